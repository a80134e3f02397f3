"""initial estimator schema

Revision ID: 5b2e0c1d9a47
Revises:
Create Date: 2026-10-17 09:00:00.000000

Rate card, team library, projects with people/holidays, stored summaries
and project templates. Tables are only created when missing, so databases
built by Base.metadata.create_all() upgrade cleanly.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '5b2e0c1d9a47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE_LEVEL = sa.Enum("TEAM_LEAD", "SENIOR", "JUNIOR", name="rolelevel")
MEMBER_STATUS = sa.Enum("ACTIVE", "INACTIVE", name="memberstatus")
PRICING_MODE = sa.Enum("DIRECT", "ROI", "MARGIN", name="pricingmode")
WORKING_WEEK = sa.Enum("MON_FRI", "MON_SAT", "SUN_THU", name="workingweek")
HOLIDAY_TREATMENT = sa.Enum("EXCLUDE", "BILLABLE_MULTIPLIER", "INFO", name="holidaytreatment")
RATE_SOURCE = sa.Enum("RATE_CARD", "CUSTOM", name="ratesource")


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("rate_card_roles"):
        op.create_table(
            "rate_card_roles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
        )

    if not _table_exists("rate_card_tiers"):
        op.create_table(
            "rate_card_tiers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("role_id", sa.Integer(), nullable=False),
            sa.Column("level", ROLE_LEVEL, nullable=False),
            sa.Column("price_per_day", sa.Numeric(12, 2), nullable=False),
            sa.Column("active", sa.Boolean(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["role_id"], ["rate_card_roles.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("role_id", "level", name="uq_rate_card_tier_role_level"),
        )

    if not _table_exists("team_members"):
        op.create_table(
            "team_members",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("role_id", sa.Integer(), nullable=True),
            sa.Column("role_name", sa.String(), nullable=True),
            sa.Column("level", ROLE_LEVEL, nullable=True),
            sa.Column("default_rate_per_day", sa.Numeric(12, 2), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("status", MEMBER_STATUS, nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["role_id"], ["rate_card_roles.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists("projects"):
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("client", sa.String(), nullable=False),
            sa.Column("currency_code", sa.String(), nullable=True),
            sa.Column("currency_symbol", sa.String(), nullable=True),
            sa.Column("hours_per_day", sa.Float(), nullable=True),
            sa.Column("tax_enabled", sa.Boolean(), nullable=True),
            sa.Column("tax_percent", sa.Numeric(5, 2), nullable=True),
            sa.Column("pricing_mode", PRICING_MODE, nullable=True),
            sa.Column("proposed_price", sa.Numeric(14, 2), nullable=True),
            sa.Column("target_roi_percent", sa.Numeric(7, 2), nullable=True),
            sa.Column("target_margin_percent", sa.Numeric(5, 2), nullable=True),
            sa.Column("fx_note", sa.Text(), nullable=True),
            sa.Column("execution_days", sa.Integer(), nullable=True),
            sa.Column("buffer_days", sa.Integer(), nullable=True),
            sa.Column("final_days", sa.Integer(), nullable=True),
            sa.Column("calendar_mode", sa.Boolean(), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("working_week", WORKING_WEEK, nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists("project_people"):
        op.create_table(
            "project_people",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("team_member_id", sa.Integer(), nullable=True),
            sa.Column("person_label", sa.String(), nullable=False),
            sa.Column("role_id", sa.Integer(), nullable=True),
            sa.Column("level", ROLE_LEVEL, nullable=True),
            sa.Column("rate_source", RATE_SOURCE, nullable=True),
            sa.Column("price_per_day", sa.Numeric(12, 2), nullable=False),
            sa.Column("allocated_days", sa.Numeric(8, 2), nullable=True),
            sa.Column("utilization_percent", sa.Numeric(5, 2), nullable=True),
            sa.Column("non_billable", sa.Boolean(), nullable=True),
            sa.Column("weekend_multiplier", sa.Numeric(6, 3), nullable=True),
            sa.Column("holiday_multiplier", sa.Numeric(6, 3), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.ForeignKeyConstraint(["team_member_id"], ["team_members.id"]),
            sa.ForeignKeyConstraint(["role_id"], ["rate_card_roles.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists("project_holidays"):
        op.create_table(
            "project_holidays",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("treatment", HOLIDAY_TREATMENT, nullable=True),
            sa.Column("holiday_multiplier", sa.Numeric(6, 3), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists("project_summaries"):
        op.create_table(
            "project_summaries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("subtotal", sa.Numeric(14, 2), nullable=True),
            sa.Column("tax", sa.Numeric(14, 2), nullable=True),
            sa.Column("cost", sa.Numeric(14, 2), nullable=True),
            sa.Column("proposed_price", sa.Numeric(14, 2), nullable=True),
            sa.Column("roi_percent", sa.Numeric(9, 2), nullable=True),
            sa.Column("margin_percent", sa.Numeric(9, 2), nullable=True),
            sa.Column("currency_code", sa.String(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id"),
        )

    if not _table_exists("project_templates"):
        op.create_table(
            "project_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("payload", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )


def downgrade() -> None:
    for table_name in [
        "project_templates", "project_summaries", "project_holidays", "project_people",
        "projects", "team_members", "rate_card_tiers", "rate_card_roles",
    ]:
        if _table_exists(table_name):
            op.drop_table(table_name)
