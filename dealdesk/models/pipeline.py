"""Pipeline and PipelineStage models."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin

DEFAULT_PIPELINE_NAME = "Default Pipeline"
DEFAULT_STAGE_NAMES = (
    "New",
    "Qualified",
    "Proposal",
    "Negotiation",
    "Closed Won",
    "Closed Lost",
)


class Pipeline(UUIDMixin, TimestampMixin, OwnerMixin, Base):
    __tablename__ = "pipeline"

    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(String(500), default=None)

    # Relationships
    stages: Mapped[list["PipelineStage"]] = relationship(
        back_populates="pipeline", cascade="all, delete-orphan",
        order_by="PipelineStage.position"
    )
    deals: Mapped[list["Deal"]] = relationship(  # noqa: F821
        back_populates="pipeline", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Pipeline {self.name!r}>"


class PipelineStage(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "pipeline_stage"
    __table_args__ = (UniqueConstraint("pipeline_id", "name", name="uq_stage_pipeline_name"),)

    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(200))
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    pipeline: Mapped["Pipeline"] = relationship(back_populates="stages")
    deals: Mapped[list["Deal"]] = relationship(back_populates="stage")  # noqa: F821

    def __repr__(self) -> str:
        return f"<PipelineStage {self.name!r}>"
