"""Deal model.

A deal is matched by ``external_ref`` when the source system supplies one,
otherwise by the (title, pipeline_id, user_id) heuristic. Two distinct deals
that share a title in the same pipeline collide under the heuristic.
"""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Float, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin


class Deal(UUIDMixin, TimestampMixin, OwnerMixin, Base):
    __tablename__ = "deal"
    __table_args__ = (
        UniqueConstraint("user_id", "external_ref", name="uq_deal_user_external_ref"),
        Index("ix_deal_identity", "user_id", "pipeline_id", "title"),
    )

    title: Mapped[str] = mapped_column(String(300))
    value: Mapped[float] = mapped_column(Float, default=0.0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline.id", ondelete="CASCADE"), index=True
    )
    stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline_stage.id", ondelete="CASCADE"), index=True
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contact.id", ondelete="SET NULL"), default=None, index=True
    )
    external_ref: Mapped[str | None] = mapped_column(String(200), default=None)
    data: Mapped[dict | None] = mapped_column(JSON, default=None)

    # Relationships
    pipeline: Mapped["Pipeline"] = relationship(back_populates="deals")  # noqa: F821
    stage: Mapped["PipelineStage"] = relationship(back_populates="deals")  # noqa: F821
    contact: Mapped["Contact | None"] = relationship(back_populates="deals")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Deal {self.title!r} value={self.value}>"
