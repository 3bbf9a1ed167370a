"""config documents

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None


def _json_type() -> sa.TypeEngine:
    dialect_name = op.get_context().dialect.name
    if dialect_name == "postgresql":
        return postgresql.JSONB()
    return sa.Text()


def _has_table(table_name: str) -> bool:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    return table_name in set(insp.get_table_names())


def upgrade() -> None:
    if _has_table("config_documents"):
        return
    op.create_table(
        "config_documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("tree_json", _json_type(), nullable=False),
        sa.Column("updated_at", sa.String(), nullable=False),
        sa.UniqueConstraint("name", name="uq_config_documents_name"),
    )


def downgrade() -> None:
    op.drop_table("config_documents")
