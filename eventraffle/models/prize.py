from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .event import Event


class Prize(Base):
    """A prize line of an event with a fixed number of units to give away."""

    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Owning event."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Display name shown next to winners."""

    quantity_total: Mapped[int] = mapped_column(Integer, nullable=False)
    """Number of units this prize hands out."""

    quantity_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    """Units not yet awarded. Decremented by one per successful draw."""

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Sort key for presenting prizes."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    event: Mapped["Event"] = relationship(
        "Event", back_populates="prizes", foreign_keys=[event_id]
    )

    __table_args__ = (
        CheckConstraint("quantity_total >= 1", name="quantity_total_positive"),
        CheckConstraint(
            "quantity_remaining >= 0 AND quantity_remaining <= quantity_total",
            name="quantity_remaining_bounds",
        ),
        Index("ix_prizes_event_order", "event_id", "display_order"),
    )

    def __init__(
        self,
        *,
        event_id: Optional[int] = None,
        event: Optional["Event"] = None,
        name: str,
        quantity_total: int,
        quantity_remaining: Optional[int] = None,
        display_order: int = 0,
    ) -> None:
        if event is not None:
            self.event = event
        if event_id is not None:
            self.event_id = event_id
        self.name = name
        self.quantity_total = quantity_total
        self.quantity_remaining = (
            quantity_total if quantity_remaining is None else quantity_remaining
        )
        self.display_order = display_order

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Prize(id={id}, name={name}, remaining={rem}/{total})>".format(
            id=self.id,
            name=self.name,
            rem=self.quantity_remaining,
            total=self.quantity_total,
        )

    @property
    def awarded_count(self) -> int:
        """Units already handed out."""
        return self.quantity_total - self.quantity_remaining

    @property
    def is_exhausted(self) -> bool:
        return self.quantity_remaining <= 0

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "name": self.name,
            "quantityTotal": self.quantity_total,
            "quantityRemaining": self.quantity_remaining,
            "order": self.display_order,
        }


__all__ = ["Prize"]
