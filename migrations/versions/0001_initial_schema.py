"""Initial schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""
from alembic import op

from branch_finance.models import Base

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Baseline: every table as currently modelled. Later revisions are
    # autogenerated against this.
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind())
