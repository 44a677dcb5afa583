from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE
from eventraffle.db.utils import dt_iso

if TYPE_CHECKING:
    from .event import Event


class Attendee(Base):
    """A person checked in to an event and therefore entered in its raffle."""

    __tablename__ = "attendees"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    ticket_number: Mapped[int] = mapped_column(Integer, nullable=False)
    normalized_key: Mapped[str] = mapped_column(String(512), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    normalized_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    has_won: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # NULL is read as "not excluded" for rows created before the flag existed.
    excluded_from_raffle: Mapped[Optional[bool]] = mapped_column(
        Boolean, nullable=True, default=False
    )
    checked_in_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    event: Mapped["Event"] = relationship("Event", back_populates="attendees")

    __table_args__ = (
        UniqueConstraint("event_id", "ticket_number", name="uq_attendees_event_ticket"),
        UniqueConstraint("event_id", "normalized_key", name="uq_attendees_event_key"),
        UniqueConstraint("event_id", "normalized_phone", name="uq_attendees_event_phone"),
        Index("ix_attendees_event_has_won", "event_id", "has_won"),
    )

    def __init__(
        self,
        *,
        event_id: Optional[int] = None,
        event: Optional["Event"] = None,
        full_name: str,
        department: str,
        ticket_number: int,
        normalized_key: str,
        phone_number: Optional[str] = None,
        normalized_phone: Optional[str] = None,
        has_won: bool = False,
        excluded_from_raffle: Optional[bool] = False,
        checked_in_at: Optional[datetime] = None,
    ) -> None:
        if event is not None:
            self.event = event
        if event_id is not None:
            self.event_id = event_id
        self.full_name = full_name
        self.department = department
        self.ticket_number = ticket_number
        self.normalized_key = normalized_key
        self.phone_number = phone_number
        self.normalized_phone = normalized_phone
        self.has_won = has_won
        self.excluded_from_raffle = excluded_from_raffle
        if checked_in_at is not None:
            self.checked_in_at = checked_in_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Attendee(id={id}, event_id={event_id}, ticket={ticket}, has_won={won})>".format(
            id=self.id,
            event_id=self.event_id,
            ticket=self.ticket_number,
            won=self.has_won,
        )

    @property
    def is_eligible(self) -> bool:
        return not self.has_won and not self.excluded_from_raffle

    @classmethod
    def next_ticket_number(cls, session: Session, event_id: int) -> int:
        """Return the ticket number the next check-in for ``event_id`` receives."""
        current = session.scalar(
            select(func.max(cls.ticket_number)).where(cls.event_id == event_id)
        )
        return (current or 0) + 1

    @classmethod
    def get_by_normalized_phone(
        cls, session: Session, event_id: int, normalized_phone: str
    ) -> Optional["Attendee"]:
        return session.scalar(
            select(cls).where(
                cls.event_id == event_id, cls.normalized_phone == normalized_phone
            )
        )

    @classmethod
    def get_by_normalized_key(
        cls, session: Session, event_id: int, normalized_key: str
    ) -> Optional["Attendee"]:
        return session.scalar(
            select(cls).where(
                cls.event_id == event_id, cls.normalized_key == normalized_key
            )
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "fullName": self.full_name,
            "department": self.department,
            "ticketNumber": self.ticket_number,
            "phoneNumber": self.phone_number,
            "hasWon": self.has_won,
            "excludedFromRaffle": bool(self.excluded_from_raffle),
            "checkedInAt": dt_iso(self.checked_in_at),
        }


__all__ = ["Attendee"]
