"""Attendee check-in: the upstream producer of raffle entries."""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .draw.errors import CheckinRejected, EventNotFound, EventNotLive
from .models import Attendee, Event

logger = logging.getLogger(__name__)

MAX_TICKET_ATTEMPTS = 3


def slugify(text: str) -> str:
    """Lower-case ``text``, strip diacritics and collapse it to a hyphenated slug."""
    decomposed = unicodedata.normalize("NFD", text.lower().strip())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = re.sub(r"[^a-z0-9\s-]", "", stripped)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def create_normalized_key(full_name: str, department: str) -> str:
    """Return the per-event dedupe key for a name and department pair."""
    return f"{slugify(full_name)}|{slugify(department)}"


def normalize_phone_number(phone: str) -> str:
    """Normalize a Vietnamese phone number to the digits-only ``84xxxxxxxxx`` form.

    Local numbers (``0xxxxxxxxx``) get the country code; anything else is
    reduced to its digits.
    """
    digits = re.sub(r"\D", "", phone)
    if digits.startswith("84") and len(digits) == 11:
        return digits
    if digits.startswith("0") and len(digits) == 10:
        return "84" + digits[1:]
    return digits


def is_valid_vietnam_phone(phone: str) -> bool:
    """Return ``True`` for a mobile number with a 03/05/07/08/09 prefix."""
    normalized = normalize_phone_number(phone.strip())
    if len(normalized) == 11 and normalized.startswith("84"):
        return re.fullmatch(r"[35789]\d{8}", normalized[2:]) is not None
    return False


def format_ticket_number(number: int, digits: int = 5) -> str:
    return str(number).zfill(digits)


def check_in_attendee(
    session: Session,
    event_code: str,
    full_name: str,
    department: str,
    phone_number: str,
) -> Attendee:
    """Register an attendee for a live event and hand out the next ticket number.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session. The attendee is flushed, not committed.
    event_code : str
        Code of the event, case-insensitive.
    full_name : str
        Attendee name, at least two characters after trimming.
    department : str
        Attendee department, non-empty.
    phone_number : str
        Phone number with exactly ten digits. One check-in per number.

    Returns
    -------
    Attendee
        The persisted attendee with its ticket number.

    Raises
    ------
    CheckinRejected
        If the input is invalid, or the phone number or name/department pair
        already checked in to this event.
    EventNotFound
        If no event has ``event_code``.
    EventNotLive
        If the event is not accepting check-ins.
    """
    full_name = (full_name or "").strip()
    department = (department or "").strip()
    phone_number = (phone_number or "").strip()
    if len(full_name) < 2:
        raise CheckinRejected("Full name must contain at least 2 characters")
    if not department:
        raise CheckinRejected("Department is required")
    if len(re.sub(r"\D", "", phone_number)) != 10:
        raise CheckinRejected("Phone number must contain exactly 10 digits")

    event = Event.get_by_code(session, event_code or "")
    if event is None:
        raise EventNotFound()
    if not event.is_live:
        raise EventNotLive("Event is not open for check-in")

    normalized_key = create_normalized_key(full_name, department)
    normalized_phone = normalize_phone_number(phone_number)
    _reject_duplicates(session, event.id, normalized_key, normalized_phone)

    for _ in range(MAX_TICKET_ATTEMPTS):
        attendee = Attendee(
            event_id=event.id,
            full_name=full_name,
            department=department,
            ticket_number=Attendee.next_ticket_number(session, event.id),
            normalized_key=normalized_key,
            phone_number=phone_number,
            normalized_phone=normalized_phone,
        )
        try:
            with session.begin_nested():
                session.add(attendee)
                session.flush()
        except IntegrityError:
            # Either a concurrent check-in took the same ticket number, or the
            # same person checked in at the same moment.
            _reject_duplicates(session, event.id, normalized_key, normalized_phone)
            logger.warning(
                f"Ticket number collision for event {event.id}, retrying check-in"
            )
            continue
        logger.info(
            f"Checked in attendee {attendee.id} to event {event.code} "
            f"with ticket {format_ticket_number(attendee.ticket_number)}"
        )
        return attendee

    raise CheckinRejected(
        "Could not allocate a ticket number, try again", status_code=409
    )


def set_raffle_exclusion(
    session: Session, attendee_id: int, excluded: bool
) -> Attendee:
    """Include or exclude an attendee from future draws.

    Winners keep their win; toggling exclusion after a win is rejected.
    """
    attendee = session.get(Attendee, attendee_id)
    if attendee is None:
        raise CheckinRejected("Attendee not found", status_code=404)
    if attendee.has_won:
        raise CheckinRejected(
            "Attendee has already won and cannot be changed", status_code=409
        )
    attendee.excluded_from_raffle = excluded
    session.flush()
    return attendee


def _reject_duplicates(
    session: Session,
    event_id: int,
    normalized_key: str,
    normalized_phone: Optional[str],
) -> None:
    if normalized_phone and Attendee.get_by_normalized_phone(
        session, event_id, normalized_phone
    ):
        raise CheckinRejected(
            "This phone number has already checked in", status_code=409
        )
    if Attendee.get_by_normalized_key(session, event_id, normalized_key):
        raise CheckinRejected(
            "An attendee with this name and department has already checked in",
            status_code=409,
        )


__all__ = [
    "check_in_attendee",
    "create_normalized_key",
    "format_ticket_number",
    "is_valid_vietnam_phone",
    "normalize_phone_number",
    "set_raffle_exclusion",
    "slugify",
]
