"""Append-only winner ledger: recording, history queries and event reset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ..db.engine import read_session
from ..db.utils import dt_iso
from ..models import Attendee, Event, Prize, Winner, WINNER_UNIQUE_CONSTRAINT
from .errors import EventNotFound, WinnerConflict
from .storage import storage_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WinnerView:
    """Read-only projection of a :class:`Winner` row plus the prize name.

    Attributes
    ----------
    full_name, department, ticket_number
        Snapshot of the attendee taken when the win was recorded.
    prize_name : Optional[str]
        Current display name of the prize, for presentation only.
    """

    id: int
    event_id: int
    prize_id: int
    attendee_id: int
    draw_run_id: int
    full_name: str
    department: str
    ticket_number: int
    won_at: datetime
    prize_name: Optional[str]

    @classmethod
    def from_winner(cls, winner: Winner, prize_name: Optional[str]) -> "WinnerView":
        return cls(
            id=winner.id,
            event_id=winner.event_id,
            prize_id=winner.prize_id,
            attendee_id=winner.attendee_id,
            draw_run_id=winner.draw_run_id,
            full_name=winner.snapshot_full_name,
            department=winner.snapshot_department,
            ticket_number=winner.snapshot_ticket_number,
            won_at=winner.won_at,
            prize_name=prize_name,
        )

    @property
    def snapshot(self) -> dict[str, Any]:
        return {
            "fullName": self.full_name,
            "department": self.department,
            "ticketNumber": self.ticket_number,
        }

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "prizeId": self.prize_id,
            "attendeeId": self.attendee_id,
            "snapshot": self.snapshot,
            "wonAt": dt_iso(self.won_at),
            "prizeName": self.prize_name,
        }


@dataclass(frozen=True)
class WinnerHistory:
    winners: list[WinnerView]
    selected_prize_id: Optional[int]
    selected_prize_name: Optional[str]

    def to_json(self) -> dict[str, Any]:
        return {
            "winners": [w.to_json() for w in self.winners],
            "selectedPrizeId": self.selected_prize_id,
            "selectedPrizeName": self.selected_prize_name,
        }


@dataclass(frozen=True)
class EventStats:
    total_attendees: int
    total_winners: int
    total_prizes: int

    def to_json(self) -> dict[str, int]:
        return {
            "totalAttendees": self.total_attendees,
            "totalWinners": self.total_winners,
            "totalPrizes": self.total_prizes,
        }


@dataclass(frozen=True)
class ResetSummary:
    winners_removed: int
    attendees_reset: int
    prizes_restored: int


def is_winner_conflict(exc: IntegrityError) -> bool:
    """Return ``True`` when ``exc`` was raised by the one-win-per-attendee constraint.

    PostgreSQL and MySQL report the constraint name; SQLite reports the
    constrained columns instead.
    """
    message = str(exc.orig)
    return (
        WINNER_UNIQUE_CONSTRAINT in message
        or "winners.event_id, winners.attendee_id" in message
    )


class WinnerLedger:
    """Store of draw outcomes. Rows are only ever added by the draw engine
    and only ever removed by :meth:`reset_event`."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @staticmethod
    def record(
        session: Session,
        attendee: Attendee,
        *,
        prize_id: int,
        draw_run_id: int,
        won_at: Optional[datetime] = None,
    ) -> Winner:
        """Insert a winner row for ``attendee`` and flush it immediately.

        The flush is the commit gate of a draw: the unique constraint on
        ``(event_id, attendee_id)`` rejects an attendee who already won, in
        which case :class:`WinnerConflict` is raised and the caller must roll
        back. Other integrity errors propagate unchanged.
        """
        winner = Winner.from_attendee(
            attendee, prize_id=prize_id, draw_run_id=draw_run_id, won_at=won_at
        )
        # A failed flush rolls the transaction back and expires every loaded
        # instance, so the ids are captured while they can still be read.
        details = {"eventId": winner.event_id, "attendeeId": winner.attendee_id}
        session.add(winner)
        try:
            session.flush()
        except IntegrityError as exc:
            if is_winner_conflict(exc):
                raise WinnerConflict(details=details) from exc
            raise
        return winner

    @staticmethod
    def count_for_prize(session: Session, prize_id: int) -> int:
        return session.scalar(
            select(func.count(Winner.id)).where(Winner.prize_id == prize_id)
        ) or 0

    def list_winners(
        self, event_id: int, prize_id: Optional[int] = None
    ) -> list[WinnerView]:
        """Return winners of ``event_id`` newest first, optionally for one prize."""
        with storage_errors("winner listing"):
            with read_session(self._session_factory) as session:
                return self._list_winners(session, event_id, prize_id)

    def history(self, event_id: int, prize_id: Optional[int] = None) -> WinnerHistory:
        """Return the winner list together with the prize currently on deck."""
        with storage_errors("winner history"):
            with read_session(self._session_factory) as session:
                event = session.get(Event, event_id)
                if event is None:
                    raise EventNotFound()
                winners = self._list_winners(session, event_id, prize_id)
                selected = event.current_draw_prize
                return WinnerHistory(
                    winners=winners,
                    selected_prize_id=selected.id if selected is not None else None,
                    selected_prize_name=selected.name if selected is not None else None,
                )

    def event_stats(self, event_id: int) -> EventStats:
        with storage_errors("event stats"):
            with read_session(self._session_factory) as session:
                if session.get(Event, event_id) is None:
                    raise EventNotFound()
                return EventStats(
                    total_attendees=_count(session, Attendee.id, Attendee.event_id, event_id),
                    total_winners=_count(session, Winner.id, Winner.event_id, event_id),
                    total_prizes=_count(session, Prize.id, Prize.event_id, event_id),
                )

    def reset_event(self, event_id: int) -> ResetSummary:
        """Wipe every draw outcome of ``event_id`` in a single transaction.

        Deletes all winners, clears ``has_won`` on all attendees and restores
        every prize to its full quantity. Draw runs are kept as an audit trail.
        Running it twice leaves the same state as running it once.
        """
        with storage_errors("event reset"):
            with self._session_factory.begin() as session:
                if session.get(Event, event_id) is None:
                    raise EventNotFound()
                removed = session.execute(
                    delete(Winner)
                    .where(Winner.event_id == event_id)
                    .execution_options(synchronize_session=False)
                ).rowcount
                attendees = session.execute(
                    update(Attendee)
                    .where(Attendee.event_id == event_id)
                    .values(has_won=False)
                    .execution_options(synchronize_session=False)
                ).rowcount
                prizes = session.execute(
                    update(Prize)
                    .where(Prize.event_id == event_id)
                    .values(quantity_remaining=Prize.quantity_total)
                    .execution_options(synchronize_session=False)
                ).rowcount
        logger.info(
            f"Reset draws for event {event_id}: removed {removed} winners, "
            f"restored {prizes} prizes"
        )
        return ResetSummary(
            winners_removed=removed, attendees_reset=attendees, prizes_restored=prizes
        )

    @staticmethod
    def _list_winners(
        session: Session, event_id: int, prize_id: Optional[int]
    ) -> list[WinnerView]:
        stmt = (
            select(Winner, Prize.name)
            .join(Prize, Prize.id == Winner.prize_id)
            .where(Winner.event_id == event_id)
        )
        if prize_id is not None:
            stmt = stmt.where(Winner.prize_id == prize_id)
        stmt = stmt.order_by(Winner.won_at.desc(), Winner.id.desc())
        return [
            WinnerView.from_winner(winner, prize_name)
            for winner, prize_name in session.execute(stmt).all()
        ]


def _count(session: Session, column, owner_column, event_id: int) -> int:
    return session.scalar(select(func.count(column)).where(owner_column == event_id)) or 0


__all__ = [
    "EventStats",
    "ResetSummary",
    "WinnerHistory",
    "WinnerLedger",
    "WinnerView",
    "is_winner_conflict",
]
