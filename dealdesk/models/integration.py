"""Third-party integration credentials (stored encrypted)."""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin


class Integration(UUIDMixin, TimestampMixin, OwnerMixin, Base):
    __tablename__ = "integration"
    __table_args__ = (UniqueConstraint("user_id", "provider", name="uq_integration_user_provider"),)

    provider: Mapped[str] = mapped_column(String(50))
    credentials: Mapped[dict] = mapped_column(JSON, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<Integration {self.provider!r}>"
