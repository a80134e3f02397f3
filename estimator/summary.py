"""
Project summary service.

Maps stored project rows onto the pricing engine's CalculationInput, runs the
engine, and upserts the ProjectSummary snapshot keyed by project id.
"""

import logging
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from . import models
from .calculations import (
    CalculationInput,
    CalculationResult,
    PersonRow,
    calculate_business_days,
    calculate_totals,
    validate_calculation_input,
)

logger = logging.getLogger(__name__)


class InvalidCalculationInput(ValueError):
    """Stored project data fails the engine's input rules."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def build_calculation_input(project: models.Project) -> CalculationInput:
    rows = [
        PersonRow(
            price_per_day=person.price_per_day,
            allocated_days=person.allocated_days or 0,
            utilization_percent=person.utilization_percent if person.utilization_percent is not None else 100,
            non_billable=bool(person.non_billable),
            weekend_multiplier=person.weekend_multiplier,
            holiday_multiplier=person.holiday_multiplier,
        )
        for person in project.people
    ]
    return CalculationInput(
        rows=rows,
        tax_enabled=bool(project.tax_enabled),
        tax_percent=project.tax_percent if project.tax_percent is not None else 0,
        pricing_mode=project.pricing_mode.value if project.pricing_mode else "DIRECT",
        proposed=project.proposed_price,
        target_roi=project.target_roi_percent,
        target_margin=project.target_margin_percent,
    )


def project_day_counts(project: models.Project) -> dict:
    """
    Planned days from the schedule fields, plus calendar business days when
    the project runs in calendar mode with both dates set. Only EXCLUDE
    holidays are taken off the calendar.
    """
    planned = (project.execution_days or 0) + (project.buffer_days or 0) + (project.final_days or 0)
    counts = {
        "execution_days": project.execution_days or 0,
        "buffer_days": project.buffer_days or 0,
        "final_days": project.final_days or 0,
        "planned_days": planned,
        "business_days": None,
    }
    if project.calendar_mode and project.start_date and project.end_date:
        excluded = [
            h.date for h in project.holidays
            if h.treatment == models.HolidayTreatment.EXCLUDE
        ]
        counts["business_days"] = calculate_business_days(
            project.start_date,
            project.end_date,
            project.working_week or models.WorkingWeek.MON_FRI,
            excluded,
        )
    return counts


def upsert_project_summary(db: Session, project: models.Project, totals: CalculationResult) -> models.ProjectSummary:
    summary = db.query(models.ProjectSummary).filter(
        models.ProjectSummary.project_id == project.id
    ).first()
    if not summary:
        summary = models.ProjectSummary(project_id=project.id)
        db.add(summary)

    summary.subtotal = Decimal(str(totals.subtotal))
    summary.tax = Decimal(str(totals.tax))
    summary.cost = Decimal(str(totals.cost))
    summary.proposed_price = Decimal(str(totals.proposed))
    summary.roi_percent = Decimal(str(totals.roi_percent))
    summary.margin_percent = Decimal(str(totals.margin_percent))
    summary.currency_code = project.currency_code or "THB"

    db.commit()
    db.refresh(summary)
    return summary


def compute_project_summary(db: Session, project: models.Project) -> dict:
    """
    Validate, calculate and persist. Raises InvalidCalculationInput when the
    stored rows break the engine's rules; nothing is written in that case.
    """
    calc_input = build_calculation_input(project)
    errors = validate_calculation_input(calc_input)
    if errors:
        raise InvalidCalculationInput(errors)

    totals = calculate_totals(calc_input)
    summary = upsert_project_summary(db, project, totals)

    return {
        "summary": summary_to_dict(summary),
        "calculation_input": calc_input.model_dump(mode="json"),
        "totals": totals.model_dump(),
        "days": project_day_counts(project),
    }


def refresh_project_summary(db: Session, project: models.Project):
    """Best-effort recompute after an edit. Invalid input leaves the old summary."""
    try:
        return compute_project_summary(db, project)
    except InvalidCalculationInput as e:
        logger.warning("Summary not refreshed for project %s: %s", project.id, e)
        return None


def summary_to_dict(s: models.ProjectSummary) -> dict:
    if s is None:
        return None
    return {
        "project_id": s.project_id,
        "subtotal": float(s.subtotal or 0),
        "tax": float(s.tax or 0),
        "cost": float(s.cost or 0),
        "proposed_price": float(s.proposed_price or 0),
        "roi_percent": float(s.roi_percent or 0),
        "margin_percent": float(s.margin_percent or 0),
        "currency_code": s.currency_code,
        "updated_at": s.updated_at.isoformat() if s.updated_at else None,
    }
