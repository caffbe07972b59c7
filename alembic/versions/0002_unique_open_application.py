"""Unique open application per candidate email and job

Revision ID: 0002_unique_open_application
Revises: 0001_initial_schema
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0002_unique_open_application"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

OPEN_STATUSES = (
    "company_interested",
    "evaluating",
    "injected_by_admin",
    "interviewed",
    "pending",
    "reviewing",
    "sent_to_company",
    "sent_to_specialist",
)

OPEN_APPLICATION = sa.text(
    "NOT is_deleted AND status IN ({})".format(", ".join(f"'{status}'" for status in OPEN_STATUSES))
)


def upgrade() -> None:
    op.create_index(
        "uq_applications_open_job_email",
        "applications",
        ["job_id", sa.text("lower(candidate_email)")],
        unique=True,
        sqlite_where=OPEN_APPLICATION,
        postgresql_where=OPEN_APPLICATION,
    )


def downgrade() -> None:
    op.drop_index("uq_applications_open_job_email", table_name="applications")
