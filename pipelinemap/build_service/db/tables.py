"""SQLAlchemy ORM models for PostgreSQL.

These are the single source of truth for the database schema. Alembic reads
``Base.metadata`` to autogenerate migration scripts.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = DateTime(timezone=True)

# Partial unique index on (name, space_id); only live rows compete for a name.
NAME_SPACE_UNIQUE_INDEX = "uq_pipeline_env_maps_name_space_id"


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


# Apply naming convention to the metadata for deterministic constraint names.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class PipelineEnvMap(Base):
    """A named pipeline of a space and the environments it deploys to."""

    __tablename__ = "pipeline_env_maps"
    __table_args__ = (
        CheckConstraint("name <> ''", name="name_not_empty"),
        Index(
            NAME_SPACE_UNIQUE_INDEX,
            "name",
            "space_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("ix_pipeline_env_maps_space_id", "space_id"),
    )
    # Fetch server-side timestamps with RETURNING so rows stay usable without lazy IO.
    __mapper_args__ = {"eager_defaults": True}  # noqa: RUF012

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    space_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(TimestampTZ)

    environments: Mapped[list[PipelineEnvironment]] = relationship(
        back_populates="pipeline_env_map",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def environment_ids(self) -> list[uuid.UUID]:
        return [env.environment_id for env in self.environments]


class PipelineEnvironment(Base):
    """Reference from a pipeline environment map to an external environment."""

    __tablename__ = "pipeline_environments"
    __table_args__ = (Index("ix_pipeline_environments_pipeline_env_map_id", "pipeline_env_map_id"),)
    __mapper_args__ = {"eager_defaults": True}  # noqa: RUF012

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    environment_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    pipeline_env_map_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pipeline_env_maps.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(TimestampTZ)

    pipeline_env_map: Mapped[PipelineEnvMap] = relationship(back_populates="environments")
