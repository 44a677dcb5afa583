"""Candidate pool computation for a prize draw."""

from __future__ import annotations

from typing import AbstractSet, Sequence

from sqlalchemy import false, or_, select
from sqlalchemy.orm import Session

from ..models import Attendee


def eligible_attendees(session: Session, event_id: int) -> list[Attendee]:
    """Return attendees of ``event_id`` who may still win.

    An attendee is eligible when they have not won yet and are not excluded
    from the raffle (``NULL`` counts as not excluded). The list is ordered by
    ticket number and is meant to be used as a fixed snapshot for a single
    draw invocation.
    """
    stmt = (
        select(Attendee)
        .where(
            Attendee.event_id == event_id,
            Attendee.has_won == false(),
            or_(
                Attendee.excluded_from_raffle == false(),
                Attendee.excluded_from_raffle.is_(None),
            ),
        )
        .order_by(Attendee.ticket_number.asc(), Attendee.id.asc())
    )
    return list(session.scalars(stmt).all())


def remaining_candidates(
    pool: Sequence[Attendee], tried: AbstractSet[int]
) -> list[Attendee]:
    """Return members of ``pool`` whose id is not in ``tried``, keeping order."""
    return [attendee for attendee in pool if attendee.id not in tried]


__all__ = ["eligible_attendees", "remaining_candidates"]
