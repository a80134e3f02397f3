"""
Pricing engine — totals, business days, input validation.

Pure math. No database, no HTTP. The routers and the summary service build a
CalculationInput from stored rows and hand it to these functions.

All intermediate arithmetic runs on decimal.Decimal; values are converted to
float only after rounding to 2 places at the result boundary.
"""

import enum
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class PricingMode(str, enum.Enum):
    DIRECT = "DIRECT"
    ROI = "ROI"
    MARGIN = "MARGIN"


class WorkingWeek(str, enum.Enum):
    MON_FRI = "MON_FRI"
    MON_SAT = "MON_SAT"
    SUN_THU = "SUN_THU"


# date.weekday(): Monday=0 ... Sunday=6
WEEKEND_DAYS = {
    WorkingWeek.MON_FRI: {5, 6},
    WorkingWeek.MON_SAT: {6},
    WorkingWeek.SUN_THU: {4},
}

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)
CENTS = Decimal("0.01")


class PersonRow(BaseModel):
    """One allocation line. Multipliers left as None are not applied at all."""

    model_config = ConfigDict(populate_by_name=True)

    price_per_day: Decimal = Field(alias="pricePerDay")
    allocated_days: Decimal = Field(alias="allocatedDays")
    utilization_percent: Decimal = Field(alias="utilizationPercent")
    non_billable: bool = Field(default=False, alias="nonBillable")
    weekend_multiplier: Optional[Decimal] = Field(default=None, alias="weekendMultiplier")
    holiday_multiplier: Optional[Decimal] = Field(default=None, alias="holidayMultiplier")


class CalculationInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rows: List[PersonRow] = Field(default_factory=list)
    tax_enabled: bool = Field(default=False, alias="taxEnabled")
    tax_percent: Decimal = Field(default=ZERO, alias="taxPercent")
    # Kept as a plain string so an unrecognised mode falls back to cost
    # instead of failing to parse.
    pricing_mode: str = Field(default=PricingMode.DIRECT.value, alias="pricingMode")
    proposed: Optional[Decimal] = None
    target_roi: Optional[Decimal] = Field(default=None, alias="targetROI")
    target_margin: Optional[Decimal] = Field(default=None, alias="targetMargin")


class CalculationResult(BaseModel):
    subtotal: float
    tax: float
    cost: float
    proposed: float
    roi_percent: float
    margin_percent: float


CalculationPayload = Union[CalculationInput, dict]


def _coerce_input(data: CalculationPayload) -> CalculationInput:
    if isinstance(data, CalculationInput):
        return data
    return CalculationInput.model_validate(data)


def _resolve_mode(value) -> Optional[PricingMode]:
    try:
        return PricingMode(value)
    except ValueError:
        return None


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _round(value: Decimal) -> float:
    return float(_cents(value))


def calculate_subtotal(rows: Iterable[PersonRow]) -> Decimal:
    """Sum of billable row costs before tax, unrounded."""
    subtotal = ZERO
    for row in rows:
        if row.non_billable:
            continue

        effective_days = row.allocated_days * row.utilization_percent / HUNDRED
        row_cost = row.price_per_day * effective_days

        if row.weekend_multiplier is not None:
            row_cost *= row.weekend_multiplier
        if row.holiday_multiplier is not None:
            row_cost *= row.holiday_multiplier

        subtotal += row_cost
    return subtotal


def calculate_proposed_price(
    cost: Decimal,
    pricing_mode,
    proposed: Optional[Decimal] = None,
    target_roi: Optional[Decimal] = None,
    target_margin: Optional[Decimal] = None,
) -> Decimal:
    """
    Quoted price for the given mode.

    A missing or zero target (or explicit price in DIRECT mode) quotes at cost.
    MARGIN with target_margin == 100 divides by zero; validate first.
    """
    mode = _resolve_mode(pricing_mode)

    if mode == PricingMode.DIRECT:
        return proposed if proposed else cost

    if mode == PricingMode.ROI:
        if not target_roi:
            return cost
        return cost * (ONE + target_roi / HUNDRED)

    if mode == PricingMode.MARGIN:
        if not target_margin:
            return cost
        return cost / (ONE - target_margin / HUNDRED)

    return cost


def calculate_totals(data: CalculationPayload) -> CalculationResult:
    """
    Derive subtotal, tax, cost, proposed price, ROI% and margin%.

    Accepts a CalculationInput or a plain dict in either snake_case or the
    camelCase shape stored by the web client. Every output is rounded
    half-up to 2 decimal places.

    Money amounts are rounded to cents as they are derived, so cost is
    exactly subtotal + tax and the percentages describe the amounts shown.
    """
    calc = _coerce_input(data)

    subtotal = _cents(calculate_subtotal(calc.rows))
    tax = _cents(subtotal * calc.tax_percent / HUNDRED) if calc.tax_enabled else ZERO
    cost = subtotal + tax

    proposed = _cents(calculate_proposed_price(
        cost,
        calc.pricing_mode,
        proposed=calc.proposed,
        target_roi=calc.target_roi,
        target_margin=calc.target_margin,
    ))

    roi_percent = ZERO if cost.is_zero() else (proposed - cost) / cost * HUNDRED
    margin_percent = ZERO if proposed.is_zero() else (proposed - cost) / proposed * HUNDRED

    return CalculationResult(
        subtotal=float(subtotal),
        tax=float(tax),
        cost=float(cost),
        proposed=float(proposed),
        roi_percent=_round(roi_percent),
        margin_percent=_round(margin_percent),
    )


def _as_date(value: Union[date, datetime]) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def calculate_business_days(
    start: Union[date, datetime],
    end: Union[date, datetime],
    working_week=WorkingWeek.MON_FRI,
    holidays: Iterable[Union[date, datetime]] = (),
) -> int:
    """
    Count working days from start to end inclusive.

    A day counts unless it is a weekend day under working_week or its calendar
    date matches a holiday. Time of day is ignored. start after end gives 0.
    """
    weekend = WEEKEND_DAYS[WorkingWeek(working_week)]
    holiday_dates = {_as_date(h) for h in holidays}

    current = _as_date(start)
    last = _as_date(end)
    business_days = 0
    while current <= last:
        if current.weekday() not in weekend and current not in holiday_dates:
            business_days += 1
        current += timedelta(days=1)
    return business_days


def _parse_errors(exc: ValidationError) -> List[str]:
    """Flatten pydantic errors into "Row 1: allocatedDays: Field required" style messages."""
    messages = []
    for err in exc.errors():
        loc = list(err["loc"])
        prefix = ""
        if len(loc) >= 2 and loc[0] == "rows" and isinstance(loc[1], int):
            prefix = f"Row {loc[1] + 1}: "
            loc = loc[2:]
        field = ".".join(str(part) for part in loc)
        messages.append(f"{prefix}{field}: {err['msg']}" if field else f"{prefix}{err['msg']}")
    return messages


def validate_calculation_input(data: CalculationPayload) -> List[str]:
    """
    Return human-readable rule violations. An empty list means valid.

    Never raises: a dict that cannot be parsed into a CalculationInput is
    reported as one message per missing or malformed field.
    """
    try:
        calc = _coerce_input(data)
    except ValidationError as e:
        return _parse_errors(e)
    errors = []

    if not calc.rows:
        errors.append("At least one person row is required")

    for i, row in enumerate(calc.rows, start=1):
        if row.price_per_day <= 0:
            errors.append(f"Row {i}: Price per day must be greater than 0")
        if row.allocated_days < 0:
            errors.append(f"Row {i}: Allocated days cannot be negative")
        if row.utilization_percent < 0 or row.utilization_percent > 100:
            errors.append(f"Row {i}: Utilization must be between 0 and 100")
        if row.weekend_multiplier is not None and row.weekend_multiplier < 0:
            errors.append(f"Row {i}: Weekend multiplier cannot be negative")
        if row.holiday_multiplier is not None and row.holiday_multiplier < 0:
            errors.append(f"Row {i}: Holiday multiplier cannot be negative")

    if calc.tax_enabled and (calc.tax_percent < 0 or calc.tax_percent > 100):
        errors.append("Tax percentage must be between 0 and 100")

    mode = _resolve_mode(calc.pricing_mode)

    if mode == PricingMode.ROI and calc.target_roi is not None:
        if calc.target_roi < 0:
            errors.append("Target ROI cannot be negative")

    if mode == PricingMode.MARGIN and calc.target_margin is not None:
        if calc.target_margin < 0 or calc.target_margin >= 100:
            errors.append("Target margin must be between 0 and 100")

    return errors
