from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise driver level failures inside the block as :class:`StorageUnavailable`.

    Integrity errors are constraint outcomes, not outages, and pass through
    unchanged so callers can interpret them.
    """
    try:
        yield
    except IntegrityError:
        raise
    except DBAPIError as exc:
        logger.exception(f"Storage failure during {operation}")
        raise StorageUnavailable(f"Storage failure during {operation}") from exc


__all__ = ["storage_errors"]
