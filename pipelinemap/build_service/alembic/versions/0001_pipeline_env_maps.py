"""pipeline environment maps

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "pipeline_env_maps",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("space_id", postgresql.UUID(as_uuid=True), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint("name <> ''", name=op.f("ck_pipeline_env_maps_name_not_empty")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_pipeline_env_maps")),
    )
    op.create_index(
        "uq_pipeline_env_maps_name_space_id",
        "pipeline_env_maps",
        ["name", "space_id"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index("ix_pipeline_env_maps_space_id", "pipeline_env_maps", ["space_id"])

    op.create_table(
        "pipeline_environments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("environment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pipeline_env_map_id", postgresql.UUID(as_uuid=True), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(
            ["pipeline_env_map_id"],
            ["pipeline_env_maps.id"],
            name=op.f("fk_pipeline_environments_pipeline_env_map_id_pipeline_env_maps"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_pipeline_environments")),
    )
    op.create_index(
        "ix_pipeline_environments_pipeline_env_map_id",
        "pipeline_environments",
        ["pipeline_env_map_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_pipeline_environments_pipeline_env_map_id", table_name="pipeline_environments")
    op.drop_table("pipeline_environments")
    op.drop_index("ix_pipeline_env_maps_space_id", table_name="pipeline_env_maps")
    op.drop_index("uq_pipeline_env_maps_name_space_id", table_name="pipeline_env_maps")
    op.drop_table("pipeline_env_maps")
