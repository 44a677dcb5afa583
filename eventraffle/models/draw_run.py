from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from .id_type import ID_TYPE


class DrawRun(Base):
    """Audit marker written once per draw invocation, before a winner is chosen."""

    __tablename__ = "draw_runs"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    prize_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("prizes.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    """Identity of whoever triggered the draw."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("ix_draw_runs_event_created", "event_id", "created_at"),)

    def __init__(
        self,
        *,
        event_id: int,
        prize_id: int,
        created_by: str,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.event_id = event_id
        self.prize_id = prize_id
        self.created_by = created_by
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawRun(id={id}, event_id={e}, prize_id={p}, created_by={by})>".format(
            id=self.id, e=self.event_id, p=self.prize_id, by=self.created_by
        )


__all__ = ["DrawRun"]
