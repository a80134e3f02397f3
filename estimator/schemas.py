from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any, Dict, Literal
from datetime import date, datetime
from decimal import Decimal
from .calculations import PricingMode, WorkingWeek
from .models import RoleLevel, MemberStatus, HolidayTreatment, RateSource


def _not_null(value):
    if value is None:
        raise ValueError("may not be null")
    return value


# --- Projects ---

class ProjectBase(BaseModel):
    name: str = Field(min_length=1)
    client: str = Field(min_length=1)
    currency_code: Optional[str] = Field(default=None, min_length=3)
    currency_symbol: Optional[str] = Field(default=None, min_length=1)
    hours_per_day: Optional[float] = Field(default=None, ge=1, le=24)
    tax_enabled: bool = False
    tax_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    pricing_mode: PricingMode = PricingMode.DIRECT
    proposed_price: Optional[Decimal] = Field(default=None, ge=0)
    target_roi_percent: Optional[Decimal] = Field(default=None, ge=0)
    target_margin_percent: Optional[Decimal] = Field(default=None, ge=0, lt=100)
    fx_note: Optional[str] = None
    execution_days: int = Field(default=0, ge=0)
    buffer_days: int = Field(default=0, ge=0)
    final_days: int = Field(default=0, ge=0)
    calendar_mode: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    working_week: WorkingWeek = WorkingWeek.MON_FRI


class ProjectCreate(ProjectBase):
    people: List["ProjectPersonCreate"] = []
    holidays: List["ProjectHolidayCreate"] = []


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    client: Optional[str] = Field(default=None, min_length=1)
    currency_code: Optional[str] = Field(default=None, min_length=3)
    currency_symbol: Optional[str] = Field(default=None, min_length=1)
    hours_per_day: Optional[float] = Field(default=None, ge=1, le=24)
    tax_enabled: Optional[bool] = None
    tax_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    pricing_mode: Optional[PricingMode] = None
    proposed_price: Optional[Decimal] = Field(default=None, ge=0)
    target_roi_percent: Optional[Decimal] = Field(default=None, ge=0)
    target_margin_percent: Optional[Decimal] = Field(default=None, ge=0, lt=100)
    fx_note: Optional[str] = None
    execution_days: Optional[int] = Field(default=None, ge=0)
    buffer_days: Optional[int] = Field(default=None, ge=0)
    final_days: Optional[int] = Field(default=None, ge=0)
    calendar_mode: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    working_week: Optional[WorkingWeek] = None

    # Fields may be omitted from a PATCH, but an explicit null is rejected
    @field_validator(
        "name", "client", "currency_code", "currency_symbol", "hours_per_day",
        "tax_enabled", "pricing_mode", "execution_days", "buffer_days", "final_days",
        "calendar_mode", "working_week",
    )
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class ProjectPersonCreate(BaseModel):
    team_member_id: Optional[int] = None
    person_label: str = Field(min_length=1)
    role_id: Optional[int] = None
    level: Optional[RoleLevel] = None
    rate_source: RateSource = RateSource.CUSTOM
    price_per_day: Decimal = Field(gt=0)
    allocated_days: Decimal = Field(default=Decimal(0), ge=0)
    utilization_percent: Decimal = Field(default=Decimal(100), ge=0, le=100)
    non_billable: bool = False
    weekend_multiplier: Optional[Decimal] = Field(default=None, ge=0)
    holiday_multiplier: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None


class ProjectPersonUpdate(BaseModel):
    team_member_id: Optional[int] = None
    person_label: Optional[str] = Field(default=None, min_length=1)
    role_id: Optional[int] = None
    level: Optional[RoleLevel] = None
    rate_source: Optional[RateSource] = None
    price_per_day: Optional[Decimal] = Field(default=None, gt=0)
    allocated_days: Optional[Decimal] = Field(default=None, ge=0)
    utilization_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    non_billable: Optional[bool] = None
    weekend_multiplier: Optional[Decimal] = Field(default=None, ge=0)
    holiday_multiplier: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator(
        "person_label", "rate_source", "price_per_day", "allocated_days",
        "utilization_percent", "non_billable",
    )
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class ProjectHolidayCreate(BaseModel):
    date: date
    name: str = Field(min_length=1)
    treatment: HolidayTreatment = HolidayTreatment.EXCLUDE
    holiday_multiplier: Optional[Decimal] = Field(default=None, ge=0)


# --- Stateless calculation ---

class BusinessDaysRequest(BaseModel):
    start_date: date
    end_date: date
    working_week: WorkingWeek = WorkingWeek.MON_FRI
    holidays: List[date] = []


# --- Rate card ---

class RateCardRoleCreate(BaseModel):
    name: str = Field(min_length=1)


class RateCardTierUpdate(BaseModel):
    role_id: int
    level: RoleLevel
    price_per_day: Decimal = Field(ge=0)
    active: bool = True


# --- Team ---

class TeamMemberCreate(BaseModel):
    name: str = Field(min_length=1)
    role_id: Optional[int] = None
    role_name: str = Field(min_length=1)
    level: RoleLevel
    default_rate_per_day: Decimal = Field(gt=0)
    notes: Optional[str] = None
    status: MemberStatus = MemberStatus.ACTIVE


class TeamMemberUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    role_id: Optional[int] = None
    role_name: Optional[str] = Field(default=None, min_length=1)
    level: Optional[RoleLevel] = None
    default_rate_per_day: Optional[Decimal] = Field(default=None, gt=0)
    notes: Optional[str] = None
    status: Optional[MemberStatus] = None

    @field_validator("name", "role_name", "level", "default_rate_per_day", "status")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class TeamMember(BaseModel):
    id: int
    name: str
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    level: Optional[RoleLevel] = None
    default_rate_per_day: float
    notes: Optional[str] = None
    status: MemberStatus
    created_at: datetime
    updated_at: datetime
    class Config:
        from_attributes = True


class BulkAction(BaseModel):
    action: Literal["activate", "deactivate", "delete"]
    ids: List[int] = Field(min_length=1)


class TeamMemberCSVRow(BaseModel):
    """One data row of a team CSV upload, after header mapping."""
    name: str = Field(min_length=1)
    role: str = Field(min_length=1)
    level: RoleLevel
    default_rate_per_day: Decimal = Field(gt=0)
    notes: str = ""
    status: MemberStatus = MemberStatus.ACTIVE

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value):
        upper = str(value or "").strip().upper()
        if upper in ("TEAM_LEAD", "TEAM LEAD"):
            return RoleLevel.TEAM_LEAD
        if upper in ("SENIOR", "JUNIOR"):
            return RoleLevel(upper)
        raise ValueError(f"Invalid level: {value}. Must be one of: Team Lead, Senior, Junior")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        if not value:
            return MemberStatus.ACTIVE
        upper = str(value).strip().upper()
        if upper in ("ACTIVE", "INACTIVE"):
            return MemberStatus(upper)
        raise ValueError(f"Invalid status: {value}. Must be Active or Inactive")


# --- Templates ---

class ProjectTemplateCreate(BaseModel):
    name: str = Field(min_length=1)
    payload: Dict[str, Any]


class ProjectTemplate(ProjectTemplateCreate):
    id: int
    created_at: datetime
    updated_at: datetime
    class Config:
        from_attributes = True


ProjectCreate.model_rebuild()
