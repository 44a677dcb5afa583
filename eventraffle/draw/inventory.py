"""Per-prize unit counter."""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker

from ..models import Event, Prize
from .errors import EventNotFound, InvalidPrizeQuantity, PrizeNotFound
from .storage import storage_errors

logger = logging.getLogger(__name__)


class PrizeInventory:
    """Creates prizes and keeps ``quantity_remaining`` consistent with awards."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def create(
        self,
        event_id: int,
        name: str,
        total: int,
        *,
        display_order: int = 0,
    ) -> Prize:
        """Persist a prize with ``total`` units, all of them still available."""
        if total < 1:
            raise InvalidPrizeQuantity("Prize quantity must be at least 1")
        name = (name or "").strip()
        if not name:
            raise InvalidPrizeQuantity("Prize name must not be empty")

        with storage_errors("prize creation"):
            with self._session_factory.begin() as session:
                if session.get(Event, event_id) is None:
                    raise EventNotFound()
                prize = Prize(
                    event_id=event_id,
                    name=name,
                    quantity_total=total,
                    display_order=display_order,
                )
                session.add(prize)
                session.flush()
        logger.info(f"Created prize {prize.id} for event {event_id} with {total} units")
        return prize

    @staticmethod
    def decrement(session: Session, prize_id: int) -> bool:
        """Take one unit of ``prize_id`` inside the caller's transaction.

        The update is conditional on ``quantity_remaining > 0`` so two
        concurrent commits can never drive the counter negative. Returns
        ``False`` when no unit was left.
        """
        result = session.execute(
            update(Prize)
            .where(Prize.id == prize_id, Prize.quantity_remaining > 0)
            .values(quantity_remaining=Prize.quantity_remaining - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def resize(self, prize_id: int, new_total: int) -> Prize:
        """Change the total units of a prize, keeping awarded units intact.

        Raises
        ------
        InvalidPrizeQuantity
            If ``new_total`` is below 1 or below the number of units already
            awarded.
        PrizeNotFound
            If the prize does not exist.
        """
        if new_total < 1:
            raise InvalidPrizeQuantity("Prize quantity must be at least 1")

        with storage_errors("prize resize"):
            with self._session_factory.begin() as session:
                prize = session.get(Prize, prize_id, with_for_update=True)
                if prize is None:
                    raise PrizeNotFound()
                awarded = prize.awarded_count
                if new_total < awarded:
                    raise InvalidPrizeQuantity(
                        f"Quantity cannot be lower than {awarded} (already awarded)",
                        details={"awarded": awarded},
                    )
                prize.quantity_total = new_total
                prize.quantity_remaining = new_total - awarded
        logger.info(f"Resized prize {prize_id} to {new_total} units ({awarded} awarded)")
        return prize


__all__ = ["PrizeInventory"]
