"""Cryptographically secure selection helpers for raffle draws."""

from __future__ import annotations

import secrets
import string
from typing import Sequence, TypeVar

T = TypeVar("T")

EVENT_CODE_ALPHABET = string.ascii_lowercase + string.digits


def pick(n: int) -> int:
    """Return a uniformly distributed index in ``[0, n)``.

    Entropy comes from the operating system CSPRNG via :mod:`secrets`, so
    outcomes cannot be predicted or replayed from a seed.

    Notes
    -----
    :func:`secrets.randbelow` draws ``n.bit_length()`` random bits and rejects
    values ``>= n``, so the result carries no modulo bias for any ``n``. The
    expected number of draws per call is below two.

    Raises
    ------
    ValueError
        If ``n`` is not a positive integer.
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise ValueError(f"n must be an integer, got {type(n).__name__}")
    if n <= 0:
        raise ValueError("n must be greater than 0")
    return secrets.randbelow(n)


def pick_from(candidates: Sequence[T]) -> T:
    """Return one element of ``candidates`` chosen uniformly at random."""
    if len(candidates) == 0:
        raise ValueError("candidates must not be empty")
    return candidates[pick(len(candidates))]


def generate_event_code(length: int = 8) -> str:
    """Return a random lower-case alphanumeric event code."""
    if length <= 0:
        raise ValueError("length must be a positive integer")
    return "".join(secrets.choice(EVENT_CODE_ALPHABET) for _ in range(length))


class SecureRandomSelector:
    """Selector used by :class:`~eventraffle.draw.engine.DrawEngine`.

    Tests substitute objects exposing the same ``pick`` method to steer
    which candidate is chosen.
    """

    def pick(self, n: int) -> int:
        return pick(n)

    def pick_from(self, candidates: Sequence[T]) -> T:
        if len(candidates) == 0:
            raise ValueError("candidates must not be empty")
        return candidates[self.pick(len(candidates))]


__all__ = ["SecureRandomSelector", "generate_event_code", "pick", "pick_from"]
