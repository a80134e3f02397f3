"""
Stateless calculation endpoints — run the pricing engine on a posted input
without touching the database. Used by the project editor for live previews.
"""

from fastapi import APIRouter, HTTPException

from .. import schemas
from ..calculations import (
    CalculationInput,
    calculate_business_days,
    calculate_totals,
    validate_calculation_input,
)

router = APIRouter(prefix="/calculate", tags=["calculate"])


@router.post("/")
def calculate(calc_input: CalculationInput):
    errors = validate_calculation_input(calc_input)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid calculation input", "errors": errors},
        )
    return calculate_totals(calc_input).model_dump()


@router.post("/validate")
def validate(calc_input: CalculationInput):
    errors = validate_calculation_input(calc_input)
    return {"valid": not errors, "errors": errors}


@router.post("/business-days")
def business_days(request: schemas.BusinessDaysRequest):
    count = calculate_business_days(
        request.start_date,
        request.end_date,
        request.working_week,
        request.holidays,
    )
    return {
        "start_date": request.start_date.isoformat(),
        "end_date": request.end_date.isoformat(),
        "working_week": request.working_week.value,
        "business_days": count,
    }
