"""Prize draw subsystem: candidate selection, winner commit and ledger."""

from .eligibility import eligible_attendees, remaining_candidates
from .engine import DrawEngine, DrawOutcome, DrawState
from .errors import (
    CheckinRejected,
    EventNotFound,
    EventNotLive,
    InvalidPrizeQuantity,
    NoEligibleCandidates,
    PrizeExhausted,
    PrizeNotFound,
    RaffleError,
    StorageUnavailable,
    WinnerConflict,
)
from .inventory import PrizeInventory
from .ledger import EventStats, ResetSummary, WinnerHistory, WinnerLedger, WinnerView
from .random_selector import SecureRandomSelector, generate_event_code, pick, pick_from

__all__ = [
    "CheckinRejected",
    "DrawEngine",
    "DrawOutcome",
    "DrawState",
    "EventNotFound",
    "EventNotLive",
    "EventStats",
    "InvalidPrizeQuantity",
    "NoEligibleCandidates",
    "PrizeExhausted",
    "PrizeInventory",
    "PrizeNotFound",
    "RaffleError",
    "ResetSummary",
    "SecureRandomSelector",
    "StorageUnavailable",
    "WinnerConflict",
    "WinnerHistory",
    "WinnerLedger",
    "WinnerView",
    "eligible_attendees",
    "generate_event_code",
    "pick",
    "pick_from",
    "remaining_candidates",
]
