"""create_preferences

Creates the scoped key/value preference store:
  - preferences   dataSource (app-wide) and taskFilters (per client)

Created conditionally (IF NOT EXISTS semantics) so the revision can run
against databases that already received the table via db.create_all().

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-07-14 09:12:40.118302
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '7c1e2a9d4b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    if "preferences" not in existing:
        op.create_table(
            "preferences",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("scope", sa.String(length=100), nullable=False,
                      comment='"default" or "client:<X-Client-Id>"'),
            sa.Column("key", sa.String(length=100), nullable=False,
                      comment="dataSource | taskFilters"),
            sa.Column("value", sa.JSON(), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("scope", "key", name="uq_preference_scope_key"),
        )
        op.create_index("ix_preferences_scope", "preferences", ["scope"])


def downgrade():
    op.drop_index("ix_preferences_scope", table_name="preferences")
    op.drop_table("preferences")
