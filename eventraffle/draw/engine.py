"""Draw engine: picks a prize winner exactly once per successful draw."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ..db.engine import read_session
from ..models import Attendee, DrawRun, Event, Prize
from .eligibility import eligible_attendees, remaining_candidates
from .errors import (
    EventNotFound,
    EventNotLive,
    NoEligibleCandidates,
    PrizeExhausted,
    PrizeNotFound,
    RaffleError,
    WinnerConflict,
)
from .inventory import PrizeInventory
from .ledger import WinnerLedger, WinnerView
from .random_selector import SecureRandomSelector
from .storage import storage_errors

logger = logging.getLogger(__name__)

# Ensure environment variables from .env are loaded when this module is imported.
load_dotenv()

# Hard ceiling on candidates tried per draw. DRAW_MAX_ATTEMPTS may lower it.
MAX_DRAW_ATTEMPTS = 3


def attempts_from_env(raw: Optional[str]) -> int:
    """Parse a DRAW_MAX_ATTEMPTS value, clamped to ``[1, MAX_DRAW_ATTEMPTS]``."""
    if raw is None or not raw.strip():
        return MAX_DRAW_ATTEMPTS
    return max(1, min(int(raw), MAX_DRAW_ATTEMPTS))


DEFAULT_MAX_ATTEMPTS = attempts_from_env(os.getenv("DRAW_MAX_ATTEMPTS"))


class Selector(Protocol):
    def pick(self, n: int) -> int: ...


class DrawState(str, Enum):
    """States a single draw invocation moves through."""

    VALIDATING = "validating"
    SELECTING = "selecting"
    COMMITTING = "committing"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class DrawOutcome:
    """Result of a successful :meth:`DrawEngine.draw` call.

    Attributes
    ----------
    winner : WinnerView
        The committed winner, including the prize name.
    prize_remaining : int
        Units of the prize left right after this draw committed.
    draw_run_id : int
        Audit record of the invocation.
    attempts : int
        Number of candidates tried, including the one that won.
    states : list[DrawState]
        Every state the invocation passed through, in order.
    """

    winner: WinnerView
    prize_remaining: int
    draw_run_id: int
    attempts: int
    states: list[DrawState] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "winner": self.winner.to_json(),
            "prizeRemaining": self.prize_remaining,
        }


@dataclass
class _Validated:
    event_id: int
    prize_id: int
    prize_name: str
    pool: list[Attendee]


class DrawEngine:
    """Runs prize draws against an explicitly supplied storage client.

    Every call to :meth:`draw` is independent. Concurrent calls are not
    coordinated in memory; they serialize on the unique
    ``(event_id, attendee_id)`` constraint of the winners table. A call that
    loses that race retries with another candidate from its own pool
    snapshot, up to ``min(max_attempts, pool size)`` candidates.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        selector: Optional[Selector] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """Create a draw engine.

        Parameters
        ----------
        session_factory : sessionmaker
            Factory for sessions bound to the raffle database. Each phase of a
            draw opens its own short session.
        selector : Optional[Selector], default: None
            Object with a ``pick(n)`` method. Defaults to
            :class:`SecureRandomSelector`.
        max_attempts : int, default: 3
            Upper bound on candidates tried per draw, at most
            :data:`MAX_DRAW_ATTEMPTS`.
        """
        if not 1 <= max_attempts <= MAX_DRAW_ATTEMPTS:
            raise ValueError(
                f"max_attempts must be between 1 and {MAX_DRAW_ATTEMPTS}"
            )
        self._session_factory = session_factory
        self._selector = selector or SecureRandomSelector()
        self._max_attempts = max_attempts

    def draw(self, event_id: int, prize_id: int, initiator: str) -> DrawOutcome:
        """Draw one winner for ``prize_id`` of ``event_id``.

        Parameters
        ----------
        event_id : int
            Event to draw in. It must be live.
        prize_id : int
            Prize to award. It must belong to the event and have units left.
        initiator : str
            Identity recorded on the :class:`DrawRun` audit row.

        Returns
        -------
        DrawOutcome
            The committed winner and the prize's remaining quantity.

        Raises
        ------
        EventNotLive
            If the event does not exist or is not live.
        PrizeNotFound
            If the prize does not exist or belongs to another event.
        PrizeExhausted
            If the prize has no units left, including when the last unit is
            taken by a concurrent draw during commit.
        NoEligibleCandidates
            If nobody can win, or every sampled candidate was claimed by a
            concurrent draw.
        StorageUnavailable
            If the database could not be reached. Not retried here.
        """
        states: list[DrawState] = []

        def enter(state: DrawState) -> None:
            states.append(state)
            logger.debug(
                f"Draw event={event_id} prize={prize_id}: entering {state.value}"
            )

        enter(DrawState.VALIDATING)
        try:
            validated = self._validate(event_id, prize_id)
        except RaffleError as exc:
            enter(DrawState.FAILED)
            logger.info(f"Draw event={event_id} prize={prize_id} rejected: {exc.kind}")
            raise

        enter(DrawState.SELECTING)
        try:
            draw_run_id = self._record_draw_run(event_id, prize_id, initiator)
        except RaffleError:
            enter(DrawState.FAILED)
            raise

        pool = validated.pool
        tried: set[int] = set()
        attempts = min(self._max_attempts, len(pool))
        for attempt in range(1, attempts + 1):
            remaining = remaining_candidates(pool, tried)
            if not remaining:
                break
            candidate = remaining[self._selector.pick(len(remaining))]
            tried.add(candidate.id)

            enter(DrawState.COMMITTING)
            try:
                winner, prize_remaining = self._commit(
                    validated, candidate.id, draw_run_id
                )
            except WinnerConflict:
                enter(DrawState.RETRYING)
                logger.warning(
                    f"Draw run {draw_run_id}: attendee {candidate.id} was claimed "
                    f"concurrently (attempt {attempt}/{attempts})"
                )
                continue
            except RaffleError as exc:
                enter(DrawState.FAILED)
                logger.info(f"Draw run {draw_run_id}: commit failed with {exc.kind}")
                raise
            except Exception:
                enter(DrawState.FAILED)
                logger.exception(f"Draw run {draw_run_id}: commit failed")
                raise

            enter(DrawState.SUCCEEDED)
            logger.info(
                f"Draw run {draw_run_id}: attendee {winner.attendee_id} "
                f"(ticket {winner.ticket_number}) won prize {prize_id}, "
                f"{prize_remaining} left"
            )
            return DrawOutcome(
                winner=winner,
                prize_remaining=prize_remaining,
                draw_run_id=draw_run_id,
                attempts=attempt,
                states=states,
            )

        enter(DrawState.FAILED)
        logger.warning(
            f"Draw run {draw_run_id}: all {len(tried)} sampled candidates were "
            "claimed by concurrent draws"
        )
        raise NoEligibleCandidates(
            "Every sampled attendee was claimed by a concurrent draw",
            details={"drawRunId": draw_run_id, "tried": len(tried)},
        )

    def select_current_prize(
        self, event_id: int, prize_id: Optional[int]
    ) -> Optional[Prize]:
        """Put ``prize_id`` on deck for the next draw, or clear it with ``None``.

        Display state only. The draw itself always names its prize explicitly.
        """
        with storage_errors("prize selection"):
            with self._session_factory.begin() as session:
                event = session.get(Event, event_id)
                if event is None:
                    raise EventNotFound()
                prize = None
                if prize_id is not None:
                    prize = session.get(Prize, prize_id)
                    if prize is None or prize.event_id != event.id:
                        raise PrizeNotFound("Prize does not belong to this event")
                event.current_draw_prize_id = prize.id if prize is not None else None
        return prize

    def _validate(self, event_id: int, prize_id: int) -> _Validated:
        with storage_errors("draw validation"):
            with read_session(self._session_factory) as session:
                event = session.get(Event, event_id)
                if event is None:
                    raise EventNotLive("Event not found")
                if not event.is_live:
                    raise EventNotLive()

                prize = session.get(Prize, prize_id)
                if prize is None:
                    raise PrizeNotFound()
                if prize.event_id != event.id:
                    raise PrizeNotFound("Prize does not belong to this event")
                if prize.quantity_remaining <= 0:
                    raise PrizeExhausted()

                pool = eligible_attendees(session, event.id)
                if not pool:
                    raise NoEligibleCandidates()
                return _Validated(
                    event_id=event.id,
                    prize_id=prize.id,
                    prize_name=prize.name,
                    pool=pool,
                )

    def _record_draw_run(self, event_id: int, prize_id: int, initiator: str) -> int:
        with storage_errors("draw run recording"):
            with self._session_factory.begin() as session:
                run = DrawRun(
                    event_id=event_id,
                    prize_id=prize_id,
                    created_by=initiator or "admin",
                )
                session.add(run)
                session.flush()
                return run.id

    def _commit(
        self, validated: _Validated, attendee_id: int, draw_run_id: int
    ) -> tuple[WinnerView, int]:
        """Award one unit to ``attendee_id`` in a single transaction.

        The winner insert runs first and is the gate: if it is rejected,
        nothing else in the transaction happens. The attendee flag and the
        prize counter are only touched after it succeeds, and any later
        failure rolls the insert back with them.
        """
        with storage_errors("draw commit"):
            with self._session_factory.begin() as session:
                attendee = session.get(Attendee, attendee_id)
                if attendee is None or attendee.event_id != validated.event_id:
                    # Removed by an operator after the pool snapshot was taken.
                    raise WinnerConflict("Attendee is no longer available")

                winner = WinnerLedger.record(
                    session,
                    attendee,
                    prize_id=validated.prize_id,
                    draw_run_id=draw_run_id,
                    won_at=datetime.now(timezone.utc),
                )
                attendee.has_won = True
                if not PrizeInventory.decrement(session, validated.prize_id):
                    raise PrizeExhausted()
                prize_remaining = self._remaining(session, validated.prize_id)
                view = WinnerView.from_winner(winner, validated.prize_name)
        return view, prize_remaining

    @staticmethod
    def _remaining(session: Session, prize_id: int) -> int:
        return session.scalar(
            select(Prize.quantity_remaining).where(Prize.id == prize_id)
        )


__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DrawEngine",
    "DrawOutcome",
    "DrawState",
    "MAX_DRAW_ATTEMPTS",
    "attempts_from_env",
]
