"""Contact model."""

from __future__ import annotations

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin


class Contact(UUIDMixin, TimestampMixin, OwnerMixin, Base):
    __tablename__ = "contact"

    # Unique across all users, not per owner.
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_name: Mapped[str | None] = mapped_column(String(100), default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None, index=True)
    company_name: Mapped[str | None] = mapped_column(String(200), default=None)
    data: Mapped[dict | None] = mapped_column(JSON, default=None)

    # Relationships
    deals: Mapped[list["Deal"]] = relationship(  # noqa: F821
        back_populates="contact", order_by="Deal.created_at"
    )
    tasks: Mapped[list["Task"]] = relationship(back_populates="contact")  # noqa: F821

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email

    def __repr__(self) -> str:
        return f"<Contact {self.email!r}>"
