"""Request/response entry points used by the admin and raffle screens.

Each helper returns a JSON-ready ``dict``. Successful calls return the
payload described below; failures return ``{"errorKind", "message",
"transient"}`` together with an HTTP-equivalent ``status`` so a web layer
can forward the result unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import sessionmaker

from .draw.engine import DEFAULT_MAX_ATTEMPTS, DrawEngine
from .draw.errors import RaffleError
from .draw.inventory import PrizeInventory
from .draw.ledger import WinnerLedger

logger = logging.getLogger(__name__)


@dataclass
class RaffleServices:
    """The draw engine and its collaborators bound to one storage client."""

    engine: DrawEngine
    ledger: WinnerLedger
    inventory: PrizeInventory


def create_services(
    session_factory: sessionmaker,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> RaffleServices:
    """Wire the raffle services around ``session_factory``."""
    return RaffleServices(
        engine=DrawEngine(session_factory, max_attempts=max_attempts),
        ledger=WinnerLedger(session_factory),
        inventory=PrizeInventory(session_factory),
    )


def error_response(exc: Exception) -> dict[str, Any]:
    """Translate ``exc`` into the failure payload.

    :class:`RaffleError` subclasses keep their kind and message. Anything
    else is reported as an internal error without leaking details.
    """
    if isinstance(exc, RaffleError):
        payload = exc.to_json()
        payload["status"] = exc.status_code
        return payload
    return {
        "errorKind": "InternalError",
        "message": "Unexpected error",
        "transient": False,
        "status": 500,
    }


def run_draw(
    engine: DrawEngine, event_id: int, prize_id: int, initiator: str
) -> dict[str, Any]:
    """Draw one winner and return ``{"winner": {...}, "prizeRemaining": n}``."""
    try:
        outcome = engine.draw(event_id, prize_id, initiator)
    except RaffleError as exc:
        return error_response(exc)
    except Exception as exc:
        logger.exception(f"Draw failed for event {event_id} prize {prize_id}")
        return error_response(exc)
    return outcome.to_json()


def list_draw_history(
    ledger: WinnerLedger, event_id: int, prize_id: Optional[int] = None
) -> dict[str, Any]:
    """Return winners newest first plus the prize currently on deck.

    Shape: ``{"winners": [...], "selectedPrizeId": ..., "selectedPrizeName": ...}``.
    """
    try:
        history = ledger.history(event_id, prize_id)
    except RaffleError as exc:
        return error_response(exc)
    return history.to_json()


def reset_event_draws(ledger: WinnerLedger, event_id: int) -> dict[str, Any]:
    """Remove every draw outcome of an event. Returns ``{"success": True}``."""
    try:
        ledger.reset_event(event_id)
    except RaffleError as exc:
        payload = error_response(exc)
        payload["success"] = False
        return payload
    return {"success": True}


def select_prize_for_next_draw(
    engine: DrawEngine, event_id: int, prize_id: Optional[int]
) -> dict[str, Any]:
    """Set (or clear, with ``None``) the prize shown as next on the raffle screen."""
    try:
        prize = engine.select_current_prize(event_id, prize_id)
    except RaffleError as exc:
        payload = error_response(exc)
        payload["success"] = False
        return payload
    return {
        "success": True,
        "selectedPrizeId": prize.id if prize is not None else None,
        "selectedPrizeName": prize.name if prize is not None else None,
    }


def resize_prize(
    inventory: PrizeInventory, prize_id: int, new_total: int
) -> dict[str, Any]:
    """Change a prize's total units without touching units already awarded."""
    try:
        prize = inventory.resize(prize_id, new_total)
    except RaffleError as exc:
        return error_response(exc)
    return prize.to_json()


__all__ = [
    "RaffleServices",
    "create_services",
    "error_response",
    "list_draw_history",
    "reset_event_draws",
    "resize_prize",
    "run_draw",
    "select_prize_for_next_draw",
]
