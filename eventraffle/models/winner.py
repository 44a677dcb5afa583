"""Winner ledger rows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .attendee import Attendee
    from .prize import Prize

WINNER_UNIQUE_CONSTRAINT = "uq_winners_event_attendee"


class Winner(Base):
    """Immutable record of an attendee winning one unit of a prize.

    The attendee's name, department and ticket number are copied into the
    ``snapshot_*`` columns when the row is written so later edits to the
    attendee never rewrite history. Attendees, prizes and draw runs that
    have winner rows cannot be deleted; only an event reset removes winners.
    """

    __tablename__ = "winners"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Event the draw belonged to."""

    prize_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("prizes.id", ondelete="RESTRICT"), nullable=False
    )
    """Prize unit awarded."""

    draw_run_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("draw_runs.id", ondelete="RESTRICT"), nullable=False
    )
    """Draw invocation that produced this row."""

    attendee_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("attendees.id", ondelete="RESTRICT"), nullable=False
    )
    """Winning attendee. Unique together with ``event_id``."""

    snapshot_full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Attendee name at win time."""

    snapshot_department: Mapped[str] = mapped_column(String(255), nullable=False)
    """Attendee department at win time."""

    snapshot_ticket_number: Mapped[int] = mapped_column(Integer, nullable=False)
    """Attendee ticket number at win time."""

    won_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp of the draw commit."""

    prize: Mapped["Prize"] = relationship("Prize")
    attendee: Mapped["Attendee"] = relationship("Attendee")

    __table_args__ = (
        # One win per attendee per event. Concurrent draws serialize on this.
        UniqueConstraint("event_id", "attendee_id", name=WINNER_UNIQUE_CONSTRAINT),
        Index("ix_winners_event_prize_won_at", "event_id", "prize_id", "won_at"),
    )

    def __init__(
        self,
        *,
        event_id: int,
        prize_id: int,
        draw_run_id: int,
        attendee_id: int,
        snapshot_full_name: str,
        snapshot_department: str,
        snapshot_ticket_number: int,
        won_at: Optional[datetime] = None,
    ) -> None:
        self.event_id = event_id
        self.prize_id = prize_id
        self.draw_run_id = draw_run_id
        self.attendee_id = attendee_id
        self.snapshot_full_name = snapshot_full_name
        self.snapshot_department = snapshot_department
        self.snapshot_ticket_number = snapshot_ticket_number
        if won_at is not None:
            self.won_at = won_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Winner(id={id}, event_id={e}, prize_id={p}, attendee_id={a})>".format(
            id=self.id, e=self.event_id, p=self.prize_id, a=self.attendee_id
        )

    @classmethod
    def from_attendee(
        cls,
        attendee: "Attendee",
        *,
        prize_id: int,
        draw_run_id: int,
        won_at: Optional[datetime] = None,
    ) -> "Winner":
        """Build a winner row carrying a snapshot of ``attendee`` as it is now."""
        return cls(
            event_id=attendee.event_id,
            prize_id=prize_id,
            draw_run_id=draw_run_id,
            attendee_id=attendee.id,
            snapshot_full_name=attendee.full_name,
            snapshot_department=attendee.department,
            snapshot_ticket_number=attendee.ticket_number,
            won_at=won_at,
        )


__all__ = ["Winner", "WINNER_UNIQUE_CONSTRAINT"]
