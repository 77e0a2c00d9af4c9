"""Initial schema — content hierarchy, enrollments, progress, achievements, audit log.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False,
        server_default=sa.func.now(),
    )


def _fk(name: str, target: str, **kwargs) -> sa.Column:
    return sa.Column(
        name, UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete="CASCADE"), nullable=False, **kwargs,
    )


def upgrade() -> None:
    # ── Identity & content ─────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(30), nullable=False, server_default="PIONEER"),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        _created_at(),
    )
    op.create_table(
        "cohorts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_table(
        "leagues",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_table(
        "weeks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("league_id", "leagues.id", index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("order", sa.Integer, nullable=False),
        sa.UniqueConstraint("league_id", "order", name="uq_weeks_league_order"),
    )
    op.create_table(
        "sections",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("week_id", "weeks.id", index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("order", sa.Integer, nullable=False),
        sa.UniqueConstraint("week_id", "order", name="uq_sections_week_order"),
    )
    op.create_table(
        "resources",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("section_id", "sections.id", index=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("url", sa.String(2000), nullable=True),
        sa.Column("resource_type", sa.String(20), nullable=False, server_default="ARTICLE"),
        sa.Column("order", sa.Integer, nullable=False),
        sa.UniqueConstraint("section_id", "order", name="uq_resources_section_order"),
    )
    op.create_table(
        "enrollments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("user_id", "users.id"),
        _fk("cohort_id", "cohorts.id"),
        _fk("league_id", "leagues.id"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "enrolled_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "cohort_id", "league_id",
            name="uq_enrollments_user_cohort_league",
        ),
    )
    op.create_index("ix_enrollments_user_league", "enrollments", ["user_id", "league_id"])

    # ── Progress ───────────────────────────────────────────────
    op.create_table(
        "resource_progress",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("user_id", "users.id", index=True),
        _fk("resource_id", "resources.id"),
        sa.Column("is_completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_spent", sa.Integer, nullable=True),
        sa.Column("personal_note", sa.String(1000), nullable=True),
        sa.Column(
            "marked_for_revision", sa.Boolean, nullable=False, server_default=sa.false(),
        ),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "resource_id", name="uq_resource_progress_user_resource",
        ),
        sa.CheckConstraint(
            "(is_completed AND completed_at IS NOT NULL) "
            "OR (NOT is_completed AND completed_at IS NULL)",
            name="ck_resource_progress_completed_at",
        ),
        sa.CheckConstraint(
            "time_spent IS NULL OR time_spent >= 0",
            name="ck_resource_progress_time_spent",
        ),
    )
    op.create_table(
        "section_progress",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("user_id", "users.id", index=True),
        _fk("section_id", "sections.id"),
        sa.Column("is_completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_spent", sa.Integer, nullable=True),
        sa.Column("personal_note", sa.String(1000), nullable=True),
        sa.Column(
            "marked_for_revision", sa.Boolean, nullable=False, server_default=sa.false(),
        ),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "section_id", name="uq_section_progress_user_section",
        ),
        sa.CheckConstraint(
            "(is_completed AND completed_at IS NOT NULL) "
            "OR (NOT is_completed AND completed_at IS NULL)",
            name="ck_section_progress_completed_at",
        ),
        sa.CheckConstraint(
            "time_spent IS NULL OR time_spent >= 0",
            name="ck_section_progress_time_spent",
        ),
    )

    # ── Achievements ───────────────────────────────────────────
    op.create_table(
        "badges",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("league_id", "leagues.id", unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(2000), nullable=True),
        _created_at(),
    )
    op.create_table(
        "user_badges",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("user_id", "users.id", index=True),
        _fk("badge_id", "badges.id"),
        sa.Column(
            "earned_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )
    op.create_table(
        "specializations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("cohort_id", "cohorts.id"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_table(
        "specialization_leagues",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("specialization_id", "specializations.id"),
        _fk("league_id", "leagues.id", index=True),
        sa.Column("order", sa.Integer, nullable=False),
        sa.UniqueConstraint(
            "specialization_id", "league_id",
            name="uq_specialization_leagues_spec_league",
        ),
    )
    op.create_table(
        "user_specializations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("user_id", "users.id", index=True),
        _fk("specialization_id", "specializations.id"),
        sa.Column(
            "completed_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "specialization_id", name="uq_user_specializations_user_spec",
        ),
    )

    # ── Audit ──────────────────────────────────────────────────
    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("resource_id", UUID(as_uuid=True), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        _created_at(),
    )


def downgrade() -> None:
    for table in (
        "audit_logs", "user_specializations", "specialization_leagues",
        "specializations", "user_badges", "badges", "section_progress",
        "resource_progress", "enrollments", "resources", "sections", "weeks",
        "leagues", "cohorts", "users",
    ):
        op.drop_table(table)
