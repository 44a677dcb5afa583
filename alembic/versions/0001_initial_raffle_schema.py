"""initial raffle schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("current_draw_prize_id", ID_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft','live','ended')", name=op.f("ck_events_status_enum")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_events")),
        sa.UniqueConstraint("code", name=op.f("uq_events_code")),
    )
    op.create_table(
        "prizes",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity_total", sa.Integer(), nullable=False),
        sa.Column("quantity_remaining", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "quantity_total >= 1", name=op.f("ck_prizes_quantity_total_positive")
        ),
        sa.CheckConstraint(
            "quantity_remaining >= 0 AND quantity_remaining <= quantity_total",
            name=op.f("ck_prizes_quantity_remaining_bounds"),
        ),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_prizes_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_prizes")),
    )
    op.create_index(op.f("ix_prizes_event_id"), "prizes", ["event_id"])
    op.create_index("ix_prizes_event_order", "prizes", ["event_id", "display_order"])

    with op.batch_alter_table("events") as batch_op:
        batch_op.create_foreign_key(
            "fk_events_current_draw_prize_id_prizes",
            "prizes",
            ["current_draw_prize_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "attendees",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=255), nullable=False),
        sa.Column("ticket_number", sa.Integer(), nullable=False),
        sa.Column("normalized_key", sa.String(length=512), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("normalized_phone", sa.String(length=32), nullable=True),
        sa.Column("has_won", sa.Boolean(), nullable=False),
        sa.Column("excluded_from_raffle", sa.Boolean(), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_attendees_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_attendees")),
        sa.UniqueConstraint(
            "event_id", "ticket_number", name="uq_attendees_event_ticket"
        ),
        sa.UniqueConstraint("event_id", "normalized_key", name="uq_attendees_event_key"),
        sa.UniqueConstraint(
            "event_id", "normalized_phone", name="uq_attendees_event_phone"
        ),
    )
    op.create_index(op.f("ix_attendees_event_id"), "attendees", ["event_id"])
    op.create_index(
        "ix_attendees_event_has_won", "attendees", ["event_id", "has_won"]
    )

    op.create_table(
        "draw_runs",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_draw_runs_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["prize_id"],
            ["prizes.id"],
            name=op.f("fk_draw_runs_prize_id_prizes"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_runs")),
    )
    op.create_index(op.f("ix_draw_runs_event_id"), "draw_runs", ["event_id"])
    op.create_index(
        "ix_draw_runs_event_created", "draw_runs", ["event_id", "created_at"]
    )

    op.create_table(
        "winners",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column("draw_run_id", ID_TYPE, nullable=False),
        sa.Column("attendee_id", ID_TYPE, nullable=False),
        sa.Column("snapshot_full_name", sa.String(length=255), nullable=False),
        sa.Column("snapshot_department", sa.String(length=255), nullable=False),
        sa.Column("snapshot_ticket_number", sa.Integer(), nullable=False),
        sa.Column("won_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["attendee_id"],
            ["attendees.id"],
            name=op.f("fk_winners_attendee_id_attendees"),
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["draw_run_id"],
            ["draw_runs.id"],
            name=op.f("fk_winners_draw_run_id_draw_runs"),
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_winners_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["prize_id"],
            ["prizes.id"],
            name=op.f("fk_winners_prize_id_prizes"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_winners")),
        sa.UniqueConstraint(
            "event_id", "attendee_id", name="uq_winners_event_attendee"
        ),
    )
    op.create_index(op.f("ix_winners_event_id"), "winners", ["event_id"])
    op.create_index(
        "ix_winners_event_prize_won_at", "winners", ["event_id", "prize_id", "won_at"]
    )


def downgrade() -> None:
    op.drop_table("winners")
    op.drop_table("draw_runs")
    op.drop_table("attendees")
    with op.batch_alter_table("events") as batch_op:
        batch_op.drop_constraint(
            "fk_events_current_draw_prize_id_prizes", type_="foreignkey"
        )
    op.drop_table("prizes")
    op.drop_table("events")
