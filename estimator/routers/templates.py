from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from .. import models, schemas
from ..database import get_db

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("/", response_model=List[schemas.ProjectTemplate])
def list_templates(db: Session = Depends(get_db)):
    return db.query(models.ProjectTemplate).order_by(
        models.ProjectTemplate.updated_at.desc(), models.ProjectTemplate.id.desc()
    ).all()


@router.post("/", response_model=schemas.ProjectTemplate, status_code=201)
def create_template(template: schemas.ProjectTemplateCreate, db: Session = Depends(get_db)):
    db_template = models.ProjectTemplate(**template.model_dump())
    db.add(db_template)
    db.commit()
    db.refresh(db_template)
    return db_template


@router.delete("/{template_id}")
def delete_template(template_id: int, db: Session = Depends(get_db)):
    template = db.query(models.ProjectTemplate).filter(models.ProjectTemplate.id == template_id).first()
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    db.delete(template)
    db.commit()
    return {"ok": True}
