from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from .. import models, schemas
from ..database import get_db
from ..seed import seed_rate_card

router = APIRouter(prefix="/rate-card", tags=["rate-card"])


@router.get("/seed")
def seed(db: Session = Depends(get_db)):
    """Seed default roles and tiers. Existing rows are skipped."""
    return {"ok": True, "seeded": seed_rate_card(db)}


@router.get("/")
def get_rate_card(db: Session = Depends(get_db)):
    roles = db.query(models.RateCardRole).order_by(models.RateCardRole.name).all()
    return [_role_to_dict(r) for r in roles]


@router.post("/roles", status_code=201)
def create_role(role: schemas.RateCardRoleCreate, db: Session = Depends(get_db)):
    existing = db.query(models.RateCardRole).filter(models.RateCardRole.name == role.name).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Role '{role.name}' already exists")
    db_role = models.RateCardRole(name=role.name)
    db.add(db_role)
    db.commit()
    db.refresh(db_role)
    return _role_to_dict(db_role)


@router.patch("/")
def update_tiers(tiers: List[schemas.RateCardTierUpdate], db: Session = Depends(get_db)):
    """Upsert tiers by (role_id, level)."""
    results = []
    for tier_data in tiers:
        role = db.query(models.RateCardRole).filter(models.RateCardRole.id == tier_data.role_id).first()
        if not role:
            raise HTTPException(status_code=404, detail=f"Rate card role {tier_data.role_id} not found")

        tier = db.query(models.RateCardTier).filter(
            models.RateCardTier.role_id == tier_data.role_id,
            models.RateCardTier.level == tier_data.level,
        ).first()
        if tier:
            tier.price_per_day = tier_data.price_per_day
            tier.active = tier_data.active
        else:
            tier = models.RateCardTier(**tier_data.model_dump())
            db.add(tier)
        db.flush()
        results.append(tier)

    db.commit()
    for tier in results:
        db.refresh(tier)
    return [_tier_to_dict(t) for t in results]


def _role_to_dict(r: models.RateCardRole) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "tiers": [_tier_to_dict(t) for t in r.tiers],
    }


def _tier_to_dict(t: models.RateCardTier) -> dict:
    return {
        "id": t.id,
        "role_id": t.role_id,
        "level": t.level.value if t.level else None,
        "price_per_day": float(t.price_per_day),
        "active": t.active,
    }
