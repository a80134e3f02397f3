import logging
import math
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import settings
from ..csv_utils import TEAM_CSV_HEADERS, TEAM_CSV_REQUIRED, parse_csv, rows_to_csv, validate_csv_headers
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/team", tags=["team"])

SORTABLE_FIELDS = {
    "name": models.TeamMember.name,
    "role_name": models.TeamMember.role_name,
    "level": models.TeamMember.level,
    "default_rate_per_day": models.TeamMember.default_rate_per_day,
    "status": models.TeamMember.status,
    "created_at": models.TeamMember.created_at,
}

PREVIEW_SAMPLE_SIZE = 20


def _filtered_query(
    db: Session,
    search: Optional[str] = None,
    status: Optional[models.MemberStatus] = None,
    role_id: Optional[int] = None,
    level: Optional[models.RoleLevel] = None,
):
    query = db.query(models.TeamMember)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            models.TeamMember.name.ilike(pattern),
            models.TeamMember.role_name.ilike(pattern),
        ))
    if status:
        query = query.filter(models.TeamMember.status == status)
    if role_id is not None:
        query = query.filter(models.TeamMember.role_id == role_id)
    if level:
        query = query.filter(models.TeamMember.level == level)
    return query


def _apply_sort(query, sort: Optional[str]):
    """sort is "field:asc" or "field:desc"; unknown fields fall back to name ascending."""
    if sort:
        field, _, direction = sort.partition(":")
        column = SORTABLE_FIELDS.get(field)
        if column is not None:
            ordered = column.desc() if direction.lower() == "desc" else column.asc()
            return query.order_by(ordered, models.TeamMember.id)
    return query.order_by(models.TeamMember.name.asc(), models.TeamMember.id)


def _get_member_or_404(member_id: int, db: Session) -> models.TeamMember:
    member = db.query(models.TeamMember).filter(models.TeamMember.id == member_id).first()
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return member


def _match_role_id(role_name: str, db: Session):
    role = db.query(models.RateCardRole).filter(
        func.lower(models.RateCardRole.name) == role_name.strip().lower()
    ).first()
    return role.id if role else None


@router.get("/")
def list_team_members(
    search: Optional[str] = None,
    status: Optional[models.MemberStatus] = None,
    role_id: Optional[int] = None,
    level: Optional[models.RoleLevel] = None,
    page: int = Query(1, ge=1),
    size: int = Query(25, ge=1, le=100),
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = _filtered_query(db, search, status, role_id, level)
    total = query.count()
    members = _apply_sort(query, sort).offset((page - 1) * size).limit(size).all()
    return {
        "data": [schemas.TeamMember.model_validate(m).model_dump(mode="json") for m in members],
        "pagination": {
            "page": page,
            "size": size,
            "total": total,
            "pages": math.ceil(total / size),
        },
    }


@router.post("/", response_model=schemas.TeamMember, status_code=201)
def create_team_member(member: schemas.TeamMemberCreate, db: Session = Depends(get_db)):
    data = member.model_dump()
    if data["role_id"] is None:
        data["role_id"] = _match_role_id(data["role_name"], db)
    db_member = models.TeamMember(**data)
    db.add(db_member)
    db.commit()
    db.refresh(db_member)
    return db_member


@router.get("/export.csv")
def export_team_csv(
    search: Optional[str] = None,
    status: Optional[models.MemberStatus] = None,
    role_id: Optional[int] = None,
    level: Optional[models.RoleLevel] = None,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Export the filtered team library in the same format the importer reads."""
    query = _filtered_query(db, search, status, role_id, level)
    members = _apply_sort(query, sort).limit(settings.EXPORT_MAX_ROWS + 1).all()

    if len(members) > settings.EXPORT_MAX_ROWS:
        raise HTTPException(
            status_code=413,
            detail=(
                f"Cannot export more than {settings.EXPORT_MAX_ROWS} records. "
                f"Please apply filters to reduce the result set."
            ),
        )

    content = rows_to_csv(TEAM_CSV_HEADERS, [
        [
            m.name,
            m.role_name or (m.role.name if m.role else ""),
            m.level.value if m.level else "",
            "%.2f" % m.default_rate_per_day,
            m.notes,
            m.status.value if m.status else models.MemberStatus.ACTIVE.value,
        ]
        for m in members
    ])

    filename = f"team-members-{date.today().isoformat()}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )


@router.post("/import")
def import_team_csv(
    file: UploadFile = File(...),
    commit: bool = False,
    db: Session = Depends(get_db),
):
    """
    Upload a team CSV. With commit=false (default) only validates and returns
    a preview; with commit=true creates a member for every valid row.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Invalid file type. Only CSV files are allowed.")

    file_bytes = file.file.read()
    if len(file_bytes) > settings.CSV_MAX_BYTES:
        raise HTTPException(status_code=400, detail="File size too large. Maximum size is 5MB.")

    try:
        rows = parse_csv(file_bytes.decode("utf-8-sig"))
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 text")

    if not rows:
        raise HTTPException(status_code=400, detail="CSV file is empty")
    if len(rows) - 1 > settings.CSV_MAX_ROWS:
        raise HTTPException(status_code=400, detail=f"Too many rows. Maximum is {settings.CSV_MAX_ROWS} rows.")

    headers = rows[0]
    header_check = validate_csv_headers(headers, TEAM_CSV_HEADERS, required_count=len(TEAM_CSV_REQUIRED))
    if not header_check["valid"]:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Invalid CSV headers",
                "expected": TEAM_CSV_HEADERS,
                "received": [h.lower() for h in headers],
                "missing": header_check["missing"],
            },
        )

    valid, invalid = _validate_team_rows(headers, rows[1:])
    summary = {"total": len(rows) - 1, "valid": len(valid), "invalid": len(invalid)}

    if not commit:
        return {
            "preview": True,
            "summary": summary,
            "valid_sample": [_csv_row_to_dict(row_number, r) for row_number, r in valid[:PREVIEW_SAMPLE_SIZE]],
            "invalid_sample": invalid[:PREVIEW_SAMPLE_SIZE],
        }

    if not valid:
        raise HTTPException(status_code=400, detail="No valid rows to import")

    for _, r in valid:
        db.add(models.TeamMember(
            name=r.name,
            role_name=r.role,
            role_id=_match_role_id(r.role, db),
            level=r.level,
            default_rate_per_day=r.default_rate_per_day,
            notes=r.notes or None,
            status=r.status,
        ))
    db.commit()
    logger.info("Imported %d team members from %s (%d invalid rows)", len(valid), file.filename, len(invalid))

    summary["created"] = len(valid)
    return {
        "preview": False,
        "summary": summary,
        "created": len(valid),
        "invalid_rows": invalid or None,
    }


@router.post("/bulk")
def bulk_action(request: schemas.BulkAction, db: Session = Depends(get_db)):
    members = db.query(models.TeamMember).filter(models.TeamMember.id.in_(request.ids))

    if request.action == "delete":
        referenced = _referenced_members(request.ids, db)
        if referenced:
            raise HTTPException(
                status_code=409,
                detail={
                    "error": "Cannot delete team members",
                    "message": "Some team members are referenced by projects. Please deactivate them instead.",
                    "code": "REFERENCED_BY_PROJECTS",
                    "referenced_members": referenced,
                },
            )
        affected = members.delete(synchronize_session=False)
    else:
        status = models.MemberStatus.ACTIVE if request.action == "activate" else models.MemberStatus.INACTIVE
        affected = members.update({models.TeamMember.status: status}, synchronize_session=False)

    db.commit()
    return {"success": True, "action": request.action, "affected": affected}


@router.get("/{member_id}", response_model=schemas.TeamMember)
def get_team_member(member_id: int, db: Session = Depends(get_db)):
    return _get_member_or_404(member_id, db)


@router.patch("/{member_id}", response_model=schemas.TeamMember)
def update_team_member(member_id: int, update: schemas.TeamMemberUpdate, db: Session = Depends(get_db)):
    member = _get_member_or_404(member_id, db)
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(member, field, value)
    db.commit()
    db.refresh(member)
    return member


@router.delete("/{member_id}")
def delete_team_member(member_id: int, db: Session = Depends(get_db)):
    member = _get_member_or_404(member_id, db)
    if member.project_people:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "Cannot delete team member",
                "message": "This team member is referenced by one or more projects. "
                           "Please deactivate the member instead.",
                "code": "REFERENCED_BY_PROJECTS",
            },
        )
    db.delete(member)
    db.commit()
    return {"success": True}


# --- Helpers ---

def _referenced_members(ids: List[int], db: Session) -> List[dict]:
    rows = db.query(models.TeamMember.id, models.TeamMember.name).join(
        models.ProjectPerson, models.ProjectPerson.team_member_id == models.TeamMember.id
    ).filter(models.TeamMember.id.in_(ids)).distinct().all()
    return [{"id": member_id, "name": name} for member_id, name in rows]


def _validate_team_rows(headers: List[str], data_rows: List[List[str]]):
    """Split CSV data rows into (row_number, TeamMemberCSVRow) and error dicts.

    Row numbers are 1-based and count the header line, matching what a user
    sees in a spreadsheet.
    """
    index = {h.strip().lower(): i for i, h in enumerate(headers)}

    def cell(row, key):
        i = index.get(key.lower())
        return row[i] if i is not None and i < len(row) else ""

    valid = []
    invalid = []
    for offset, row in enumerate(data_rows):
        row_number = offset + 2
        try:
            parsed = schemas.TeamMemberCSVRow(
                name=cell(row, "name"),
                role=cell(row, "role"),
                level=cell(row, "level"),
                default_rate_per_day=cell(row, "defaultRatePerDay"),
                notes=cell(row, "notes"),
                status=cell(row, "status"),
            )
        except ValidationError as e:
            invalid.append({
                "row": row_number,
                "data": row,
                "errors": [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
            })
            continue
        valid.append((row_number, parsed))
    return valid, invalid


def _csv_row_to_dict(row_number: int, r: schemas.TeamMemberCSVRow) -> dict:
    data = r.model_dump(mode="json")
    data["row"] = row_number
    return data
