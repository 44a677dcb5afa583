"""Raffle event model."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import Base
from .id_type import ID_TYPE
from eventraffle.db.utils import dt_iso

if TYPE_CHECKING:
    from .attendee import Attendee
    from .prize import Prize

EVENT_STATUSES = ("draft", "live", "ended")
EVENT_CODE_PATTERN = re.compile(r"^[a-z0-9-]+$")


class Event(Base):
    """An event that attendees check in to and whose prizes are raffled."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    """Lower-case human readable code used in check-in and raffle URLs."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Display name."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    """Lifecycle status: ``"draft"``, ``"live"`` or ``"ended"``. Draws require ``"live"``."""

    current_draw_prize_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE,
        ForeignKey(
            "prizes.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_events_current_draw_prize_id_prizes",
        ),
        nullable=True,
    )
    """Prize an operator put "on deck" for the next draw. Display state only."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    prizes: Mapped[list["Prize"]] = relationship(
        "Prize",
        back_populates="event",
        foreign_keys="Prize.event_id",
        order_by="Prize.display_order",
    )
    attendees: Mapped[list["Attendee"]] = relationship(
        "Attendee", back_populates="event"
    )
    current_draw_prize: Mapped[Optional["Prize"]] = relationship(
        "Prize", foreign_keys=[current_draw_prize_id], post_update=True
    )

    __table_args__ = (
        CheckConstraint("status IN ('draft','live','ended')", name="status_enum"),
    )

    def __init__(
        self,
        *,
        code: str,
        name: str,
        status: str = "draft",
        current_draw_prize_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        self.code = code
        self.name = name
        self.status = status
        self.current_draw_prize_id = current_draw_prize_id
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Event(id={id}, code={code}, status={status})>".format(
            id=self.id, code=self.code, status=self.status
        )

    @validates("code")
    def _normalize_code(self, _key: str, value: str) -> str:
        normalized = (value or "").strip().lower()
        if not EVENT_CODE_PATTERN.match(normalized):
            raise ValueError(
                "Event code may only contain lowercase letters, digits and hyphens"
            )
        return normalized

    @validates("status")
    def _check_status(self, _key: str, value: str) -> str:
        if value not in EVENT_STATUSES:
            raise ValueError(f"Unknown event status '{value}'")
        return value

    @property
    def is_live(self) -> bool:
        return self.status == "live"

    @classmethod
    def get_by_code(cls, session: Session, code: str) -> Optional["Event"]:
        """Return the event whose code matches ``code`` (case-insensitive)."""
        return session.scalar(select(cls).where(cls.code == code.strip().lower()))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "status": self.status,
            "currentDrawPrizeId": self.current_draw_prize_id,
            "createdAt": dt_iso(self.created_at),
            "updatedAt": dt_iso(self.updated_at),
        }


__all__ = ["Event", "EVENT_STATUSES"]
