"""Error taxonomy reported by the draw engine and its collaborators."""

from __future__ import annotations

from typing import Any, Optional


class RaffleError(Exception):
    """Base class for every error the raffle core reports to its callers.

    Attributes
    ----------
    kind : str
        Stable identifier surfaced to callers as ``errorKind``.
    status_code : int
        HTTP-equivalent status. 4xx for domain outcomes, 5xx for transient
        storage problems.
    transient : bool
        ``True`` when retrying the whole call later may succeed without any
        state change.
    """

    kind = "RaffleError"
    status_code = 500
    transient = False
    default_message = "Raffle operation failed"

    def __init__(self, message: Optional[str] = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "errorKind": self.kind,
            "message": self.message,
            "transient": self.transient,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload


class EventNotFound(RaffleError):
    kind = "EventNotFound"
    status_code = 404
    default_message = "Event not found"


class EventNotLive(RaffleError):
    kind = "EventNotLive"
    status_code = 409
    default_message = "Event is not open or has already ended"


class PrizeNotFound(RaffleError):
    kind = "PrizeNotFound"
    status_code = 404
    default_message = "Prize not found"


class PrizeExhausted(RaffleError):
    kind = "PrizeExhausted"
    status_code = 409
    default_message = "This prize has no units left"


class NoEligibleCandidates(RaffleError):
    kind = "NoEligibleCandidates"
    status_code = 409
    default_message = "No attendees are eligible to win"


class InvalidPrizeQuantity(RaffleError):
    kind = "InvalidPrizeQuantity"
    status_code = 400
    default_message = "Invalid prize quantity"


class CheckinRejected(RaffleError):
    kind = "CheckinRejected"
    status_code = 400
    default_message = "Check-in rejected"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, details=details)
        if status_code is not None:
            self.status_code = status_code


class WinnerConflict(RaffleError):
    """The attendee was claimed by a concurrent draw. Retried, never surfaced."""

    kind = "WinnerConflict"
    status_code = 409
    default_message = "Attendee already won in this event"


class StorageUnavailable(RaffleError):
    kind = "StorageUnavailable"
    status_code = 503
    transient = True
    default_message = "Storage is unavailable, try again"


__all__ = [
    "RaffleError",
    "EventNotFound",
    "EventNotLive",
    "PrizeNotFound",
    "PrizeExhausted",
    "NoEligibleCandidates",
    "InvalidPrizeQuantity",
    "CheckinRejected",
    "WinnerConflict",
    "StorageUnavailable",
]
