from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date, Text, ForeignKey, Enum, Boolean, JSON, Numeric,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base
from .calculations import PricingMode, WorkingWeek
import enum


# --- Enums ---

class RoleLevel(str, enum.Enum):
    TEAM_LEAD = "TEAM_LEAD"
    SENIOR = "SENIOR"
    JUNIOR = "JUNIOR"


class MemberStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class HolidayTreatment(str, enum.Enum):
    EXCLUDE = "EXCLUDE"                          # not a working day
    BILLABLE_MULTIPLIER = "BILLABLE_MULTIPLIER"  # worked, billed at holiday_multiplier
    INFO = "INFO"                                # shown on the calendar only


class RateSource(str, enum.Enum):
    RATE_CARD = "RATE_CARD"
    CUSTOM = "CUSTOM"


# --- Rate card ---

class RateCardRole(Base):
    __tablename__ = "rate_card_roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    tiers = relationship("RateCardTier", back_populates="role", cascade="all, delete-orphan",
                         order_by="RateCardTier.level")
    team_members = relationship("TeamMember", back_populates="role")


class RateCardTier(Base):
    """Default day rate for one role at one seniority level."""
    __tablename__ = "rate_card_tiers"
    __table_args__ = (UniqueConstraint("role_id", "level", name="uq_rate_card_tier_role_level"),)

    id = Column(Integer, primary_key=True, index=True)
    role_id = Column(Integer, ForeignKey("rate_card_roles.id"), nullable=False)
    level = Column(Enum(RoleLevel), nullable=False)
    price_per_day = Column(Numeric(12, 2), nullable=False)
    active = Column(Boolean, default=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    role = relationship("RateCardRole", back_populates="tiers")


# --- Team library ---

class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    role_id = Column(Integer, ForeignKey("rate_card_roles.id"), nullable=True)
    # Free-text role, set by CSV import when no rate card role matches
    role_name = Column(String, nullable=True)
    level = Column(Enum(RoleLevel), nullable=True)
    default_rate_per_day = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(Enum(MemberStatus), default=MemberStatus.ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    role = relationship("RateCardRole", back_populates="team_members")
    project_people = relationship("ProjectPerson", back_populates="team_member")


# --- Projects ---

class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    client = Column(String, nullable=False)
    currency_code = Column(String, default="THB")
    currency_symbol = Column(String, default="฿")
    hours_per_day = Column(Float, default=8.0)

    # Pricing
    tax_enabled = Column(Boolean, default=False)
    tax_percent = Column(Numeric(5, 2), nullable=True)
    pricing_mode = Column(Enum(PricingMode), default=PricingMode.DIRECT)
    proposed_price = Column(Numeric(14, 2), nullable=True)
    target_roi_percent = Column(Numeric(7, 2), nullable=True)
    target_margin_percent = Column(Numeric(5, 2), nullable=True)
    fx_note = Column(Text, nullable=True)

    # Schedule
    execution_days = Column(Integer, default=0)
    buffer_days = Column(Integer, default=0)
    final_days = Column(Integer, default=0)
    calendar_mode = Column(Boolean, default=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    working_week = Column(Enum(WorkingWeek), default=WorkingWeek.MON_FRI)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    people = relationship("ProjectPerson", back_populates="project", cascade="all, delete-orphan",
                          order_by="ProjectPerson.id")
    holidays = relationship("ProjectHoliday", back_populates="project", cascade="all, delete-orphan",
                            order_by="ProjectHoliday.date")
    summary = relationship("ProjectSummary", back_populates="project", uselist=False,
                           cascade="all, delete-orphan")


class ProjectPerson(Base):
    """One allocation row on a project, mapped onto PersonRow."""
    __tablename__ = "project_people"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    team_member_id = Column(Integer, ForeignKey("team_members.id"), nullable=True)
    person_label = Column(String, nullable=False)
    role_id = Column(Integer, ForeignKey("rate_card_roles.id"), nullable=True)
    level = Column(Enum(RoleLevel), nullable=True)
    rate_source = Column(Enum(RateSource), default=RateSource.CUSTOM)
    price_per_day = Column(Numeric(12, 2), nullable=False)
    allocated_days = Column(Numeric(8, 2), default=0)
    utilization_percent = Column(Numeric(5, 2), default=100)
    non_billable = Column(Boolean, default=False)
    # NULL means "no multiplier", distinct from 1.0
    weekend_multiplier = Column(Numeric(6, 3), nullable=True)
    holiday_multiplier = Column(Numeric(6, 3), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="people")
    team_member = relationship("TeamMember", back_populates="project_people")


class ProjectHoliday(Base):
    __tablename__ = "project_holidays"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    date = Column(Date, nullable=False)
    name = Column(String, nullable=False)
    treatment = Column(Enum(HolidayTreatment), default=HolidayTreatment.EXCLUDE)
    holiday_multiplier = Column(Numeric(6, 3), nullable=True)

    project = relationship("Project", back_populates="holidays")


class ProjectSummary(Base):
    """Last CalculationResult for a project. One row per project, upserted."""
    __tablename__ = "project_summaries"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), unique=True, nullable=False)
    subtotal = Column(Numeric(14, 2), default=0)
    tax = Column(Numeric(14, 2), default=0)
    cost = Column(Numeric(14, 2), default=0)
    proposed_price = Column(Numeric(14, 2), default=0)
    roi_percent = Column(Numeric(9, 2), default=0)
    margin_percent = Column(Numeric(9, 2), default=0)
    currency_code = Column(String, default="THB")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="summary")


class ProjectTemplate(Base):
    """Saved project settings + people, replayed when starting a new project."""
    __tablename__ = "project_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    payload = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
