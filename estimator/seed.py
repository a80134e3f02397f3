"""
Default rate card — seeded on startup, safe to run repeatedly.
"""

import logging

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

DEFAULT_ROLES = ["Developer", "Designer", "Project Manager", "QA Engineer"]

# THB per day
DEFAULT_TIER_RATES = {
    models.RoleLevel.TEAM_LEAD: 4500,
    models.RoleLevel.SENIOR: 3500,
    models.RoleLevel.JUNIOR: 2500,
}


def seed_rate_card(db: Session) -> int:
    """Create missing default roles and tiers. Returns number of rows added."""
    added = 0
    for role_name in DEFAULT_ROLES:
        role = db.query(models.RateCardRole).filter(models.RateCardRole.name == role_name).first()
        if not role:
            role = models.RateCardRole(name=role_name)
            db.add(role)
            db.flush()
            added += 1

        for level, price in DEFAULT_TIER_RATES.items():
            existing = db.query(models.RateCardTier).filter(
                models.RateCardTier.role_id == role.id,
                models.RateCardTier.level == level,
            ).first()
            if not existing:
                db.add(models.RateCardTier(role_id=role.id, level=level, price_per_day=price, active=True))
                added += 1
    db.commit()
    if added:
        logger.info("Seeded %d rate card rows", added)
    return added
