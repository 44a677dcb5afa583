from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .event import Event, EVENT_STATUSES  # noqa: F401
from .prize import Prize  # noqa: F401
from .attendee import Attendee  # noqa: F401
from .draw_run import DrawRun  # noqa: F401
from .winner import Winner, WINNER_UNIQUE_CONSTRAINT  # noqa: F401

__all__ = [
    "Base",
    "Event",
    "EVENT_STATUSES",
    "Prize",
    "Attendee",
    "DrawRun",
    "Winner",
    "WINNER_UNIQUE_CONSTRAINT",
]
