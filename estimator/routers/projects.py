import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..ics import parse_ics
from ..summary import (
    InvalidCalculationInput,
    compute_project_summary,
    project_day_counts,
    refresh_project_summary,
    summary_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


def _get_project_or_404(project_id: int, db: Session) -> models.Project:
    project = db.query(models.Project).filter(models.Project.id == project_id).first()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _get_person_or_404(project_id: int, person_id: int, db: Session) -> models.ProjectPerson:
    person = db.query(models.ProjectPerson).filter(
        models.ProjectPerson.id == person_id,
        models.ProjectPerson.project_id == project_id,
    ).first()
    if not person:
        raise HTTPException(status_code=404, detail="Project person not found")
    return person


def _check_team_member(team_member_id, db: Session):
    if team_member_id is None:
        return
    exists = db.query(models.TeamMember).filter(models.TeamMember.id == team_member_id).first()
    if not exists:
        raise HTTPException(status_code=404, detail="Team member not found")


def _refresh_summary(db: Session, project: models.Project):
    """Recompute the stored summary, or drop it once the project has no people."""
    db.refresh(project)
    if project.people:
        refresh_project_summary(db, project)
    elif project.summary is not None:
        db.delete(project.summary)
        db.commit()
    db.refresh(project)


# --- Projects ---

@router.get("/")
def list_projects(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    projects = db.query(models.Project).order_by(
        models.Project.updated_at.desc(), models.Project.id.desc()
    ).offset(skip).limit(limit).all()
    return [_project_to_dict(p, include_children=False) for p in projects]


@router.post("/", status_code=201)
def create_project(project: schemas.ProjectCreate, db: Session = Depends(get_db)):
    data = project.model_dump(exclude={"people", "holidays"})
    data["currency_code"] = data["currency_code"] or settings.DEFAULT_CURRENCY_CODE
    data["currency_symbol"] = data["currency_symbol"] or settings.DEFAULT_CURRENCY_SYMBOL
    data["hours_per_day"] = data["hours_per_day"] or settings.DEFAULT_HOURS_PER_DAY

    db_project = models.Project(**data)
    db.add(db_project)
    db.flush()

    for person in project.people:
        _check_team_member(person.team_member_id, db)
        db.add(models.ProjectPerson(project_id=db_project.id, **person.model_dump()))
    for holiday in project.holidays:
        db.add(models.ProjectHoliday(project_id=db_project.id, **holiday.model_dump()))
    db.commit()

    _refresh_summary(db, db_project)
    return _project_to_dict(db_project)


@router.get("/{project_id}")
def get_project(project_id: int, db: Session = Depends(get_db)):
    return _project_to_dict(_get_project_or_404(project_id, db))


@router.patch("/{project_id}")
def update_project(project_id: int, update: schemas.ProjectUpdate, db: Session = Depends(get_db)):
    project = _get_project_or_404(project_id, db)
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(project, field, value)
    db.commit()

    _refresh_summary(db, project)
    return _project_to_dict(project)


@router.delete("/{project_id}")
def delete_project(project_id: int, db: Session = Depends(get_db)):
    project = _get_project_or_404(project_id, db)
    db.delete(project)
    db.commit()
    return {"ok": True}


@router.get("/{project_id}/summary")
def get_project_summary(project_id: int, db: Session = Depends(get_db)):
    """
    Recalculate totals from the stored people rows and upsert the summary.

    Returns 400 with the validator's messages when the stored data is not
    a valid calculation input.
    """
    project = _get_project_or_404(project_id, db)
    try:
        return compute_project_summary(db, project)
    except InvalidCalculationInput as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid calculation input", "errors": e.errors},
        )


# --- People ---

@router.post("/{project_id}/people", status_code=201)
def add_person(project_id: int, person: schemas.ProjectPersonCreate, db: Session = Depends(get_db)):
    project = _get_project_or_404(project_id, db)
    _check_team_member(person.team_member_id, db)

    db_person = models.ProjectPerson(project_id=project.id, **person.model_dump())
    db.add(db_person)
    db.commit()
    db.refresh(db_person)

    _refresh_summary(db, project)
    return _person_to_dict(db_person)


@router.patch("/{project_id}/people/{person_id}")
def update_person(
    project_id: int,
    person_id: int,
    update: schemas.ProjectPersonUpdate,
    db: Session = Depends(get_db),
):
    project = _get_project_or_404(project_id, db)
    person = _get_person_or_404(project_id, person_id, db)

    changes = update.model_dump(exclude_unset=True)
    if "team_member_id" in changes:
        _check_team_member(changes["team_member_id"], db)
    for field, value in changes.items():
        setattr(person, field, value)
    db.commit()
    db.refresh(person)

    _refresh_summary(db, project)
    return _person_to_dict(person)


@router.delete("/{project_id}/people/{person_id}")
def delete_person(project_id: int, person_id: int, db: Session = Depends(get_db)):
    project = _get_project_or_404(project_id, db)
    person = _get_person_or_404(project_id, person_id, db)
    db.delete(person)
    db.commit()

    _refresh_summary(db, project)
    return {"ok": True}


# --- Holidays ---

@router.get("/{project_id}/holidays")
def list_holidays(project_id: int, db: Session = Depends(get_db)):
    project = _get_project_or_404(project_id, db)
    return [_holiday_to_dict(h) for h in project.holidays]


@router.post("/{project_id}/holidays", status_code=201)
def add_holiday(project_id: int, holiday: schemas.ProjectHolidayCreate, db: Session = Depends(get_db)):
    project = _get_project_or_404(project_id, db)
    db_holiday = models.ProjectHoliday(project_id=project.id, **holiday.model_dump())
    db.add(db_holiday)
    db.commit()
    db.refresh(db_holiday)
    return _holiday_to_dict(db_holiday)


@router.delete("/{project_id}/holidays/{holiday_id}")
def delete_holiday(project_id: int, holiday_id: int, db: Session = Depends(get_db)):
    holiday = db.query(models.ProjectHoliday).filter(
        models.ProjectHoliday.id == holiday_id,
        models.ProjectHoliday.project_id == project_id,
    ).first()
    if not holiday:
        raise HTTPException(status_code=404, detail="Holiday not found")
    db.delete(holiday)
    db.commit()
    return {"ok": True}


@router.post("/{project_id}/holidays/import")
def import_holidays(
    project_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Import holidays from an .ics calendar. Dates already on the project are
    skipped. Imported holidays use the EXCLUDE treatment.
    """
    project = _get_project_or_404(project_id, db)

    if not file.filename or not file.filename.lower().endswith(".ics"):
        raise HTTPException(status_code=400, detail="File must be an .ics calendar")

    file_bytes = file.file.read()
    if len(file_bytes) > settings.CSV_MAX_BYTES:
        raise HTTPException(status_code=413, detail="File size too large. Maximum size is 5MB.")

    try:
        events = parse_ics(file_bytes.decode("utf-8-sig"))
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Calendar file must be UTF-8 text")

    existing = {h.date for h in project.holidays}
    created = 0
    for event_date, name in events:
        if event_date in existing:
            continue
        db.add(models.ProjectHoliday(project_id=project.id, date=event_date, name=name))
        existing.add(event_date)
        created += 1
    db.commit()

    logger.info("Imported %d holidays into project %s (%d events read)", created, project.id, len(events))
    return {"ok": True, "events": len(events), "created": created, "skipped": len(events) - created}


# --- Serialisation ---

def _num(value):
    return float(value) if value is not None else None


def _project_to_dict(p: models.Project, include_children: bool = True) -> dict:
    data = {
        "id": p.id,
        "name": p.name,
        "client": p.client,
        "currency_code": p.currency_code,
        "currency_symbol": p.currency_symbol,
        "hours_per_day": p.hours_per_day,
        "tax_enabled": p.tax_enabled,
        "tax_percent": _num(p.tax_percent),
        "pricing_mode": p.pricing_mode.value if p.pricing_mode else None,
        "proposed_price": _num(p.proposed_price),
        "target_roi_percent": _num(p.target_roi_percent),
        "target_margin_percent": _num(p.target_margin_percent),
        "fx_note": p.fx_note,
        "execution_days": p.execution_days,
        "buffer_days": p.buffer_days,
        "final_days": p.final_days,
        "calendar_mode": p.calendar_mode,
        "start_date": p.start_date.isoformat() if p.start_date else None,
        "end_date": p.end_date.isoformat() if p.end_date else None,
        "working_week": p.working_week.value if p.working_week else None,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
        "summary": summary_to_dict(p.summary),
    }
    if include_children:
        data["people"] = [_person_to_dict(person) for person in p.people]
        data["holidays"] = [_holiday_to_dict(h) for h in p.holidays]
        data["days"] = project_day_counts(p)
    return data


def _person_to_dict(person: models.ProjectPerson) -> dict:
    return {
        "id": person.id,
        "project_id": person.project_id,
        "team_member_id": person.team_member_id,
        "person_label": person.person_label,
        "role_id": person.role_id,
        "level": person.level.value if person.level else None,
        "rate_source": person.rate_source.value if person.rate_source else None,
        "price_per_day": _num(person.price_per_day),
        "allocated_days": _num(person.allocated_days),
        "utilization_percent": _num(person.utilization_percent),
        "non_billable": person.non_billable,
        "weekend_multiplier": _num(person.weekend_multiplier),
        "holiday_multiplier": _num(person.holiday_multiplier),
        "notes": person.notes,
    }


def _holiday_to_dict(h: models.ProjectHoliday) -> dict:
    return {
        "id": h.id,
        "project_id": h.project_id,
        "date": h.date.isoformat(),
        "name": h.name,
        "treatment": h.treatment.value if h.treatment else None,
        "holiday_multiplier": _num(h.holiday_multiplier),
    }
