from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from raffle_fixtures import FixedSelector, RaffleTestCase

from eventraffle.draw.engine import DrawEngine
from eventraffle.draw.errors import EventNotFound, WinnerConflict
from eventraffle.draw.ledger import WinnerLedger, is_winner_conflict
from eventraffle.models import Attendee, DrawRun, Event, Prize, Winner


class WinnerLedgerTests(RaffleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ledger = WinnerLedger(self.Session)
        self.engine_ = DrawEngine(self.Session, selector=FixedSelector(0))

    def _insert_winner(self, event_id, prize_id, attendee_id, won_at):
        with self.Session.begin() as session:
            run = DrawRun(event_id=event_id, prize_id=prize_id, created_by="admin")
            session.add(run)
            session.flush()
            attendee = session.get(Attendee, attendee_id)
            winner = WinnerLedger.record(
                session, attendee, prize_id=prize_id, draw_run_id=run.id, won_at=won_at
            )
            attendee.has_won = True
            return winner.id

    def test_list_winners_newest_first(self) -> None:
        event_id, prize_ids, attendee_ids = self.seed_event(
            attendees=3, prizes=[("Phone", 2), ("Watch", 1)]
        )
        base = datetime(2025, 12, 20, 19, 0, tzinfo=timezone.utc)
        first = self._insert_winner(event_id, prize_ids[0], attendee_ids[0], base)
        second = self._insert_winner(
            event_id, prize_ids[1], attendee_ids[1], base + timedelta(minutes=5)
        )
        # Same timestamp as ``second``: the higher id comes first.
        third = self._insert_winner(
            event_id, prize_ids[0], attendee_ids[2], base + timedelta(minutes=5)
        )

        winners = self.ledger.list_winners(event_id)
        self.assertEqual([w.id for w in winners], [third, second, first])
        self.assertEqual(
            [w.prize_name for w in winners], ["Phone", "Watch", "Phone"]
        )

        phone_winners = self.ledger.list_winners(event_id, prize_ids[0])
        self.assertEqual([w.id for w in phone_winners], [third, first])

    def test_list_is_scoped_to_event(self) -> None:
        event_a, (prize_a,), _ = self.seed_event(code="alpha")
        event_b, _, _ = self.seed_event(code="beta")
        self.engine_.draw(event_a, prize_a, "admin")

        self.assertEqual(len(self.ledger.list_winners(event_a)), 1)
        self.assertEqual(self.ledger.list_winners(event_b), [])

    def test_snapshot_survives_attendee_changes(self) -> None:
        event_id, (prize_id,), attendee_ids = self.seed_event(attendees=1)
        self.engine_.draw(event_id, prize_id, "admin")

        with self.Session.begin() as session:
            attendee = session.get(Attendee, attendee_ids[0])
            attendee.full_name = "Renamed Person"
            attendee.department = "Finance"

        (winner,) = self.ledger.list_winners(event_id)
        self.assertEqual(winner.full_name, "Attendee 1")
        self.assertEqual(winner.department, "Engineering")
        self.assertEqual(winner.ticket_number, 1)

    def test_history_includes_selected_prize(self) -> None:
        event_id, prize_ids, _ = self.seed_event(prizes=[("Phone", 1), ("Watch", 1)])
        self.engine_.select_current_prize(event_id, prize_ids[1])
        self.engine_.draw(event_id, prize_ids[0], "admin")

        payload = self.ledger.history(event_id).to_json()
        self.assertEqual(payload["selectedPrizeId"], prize_ids[1])
        self.assertEqual(payload["selectedPrizeName"], "Watch")
        self.assertEqual(len(payload["winners"]), 1)
        self.assertEqual(payload["winners"][0]["prizeName"], "Phone")

    def test_history_without_selection(self) -> None:
        event_id, _, _ = self.seed_event()
        history = self.ledger.history(event_id)
        self.assertEqual(history.winners, [])
        self.assertIsNone(history.selected_prize_id)
        self.assertIsNone(history.selected_prize_name)

    def test_history_unknown_event(self) -> None:
        with self.assertRaises(EventNotFound):
            self.ledger.history(404)

    def test_record_rejects_second_win(self) -> None:
        event_id, prize_ids, attendee_ids = self.seed_event(
            attendees=1, prizes=[("Phone", 1), ("Watch", 1)]
        )
        now = datetime.now(timezone.utc)
        self._insert_winner(event_id, prize_ids[0], attendee_ids[0], now)

        with self.assertRaises(WinnerConflict) as ctx:
            self._insert_winner(event_id, prize_ids[1], attendee_ids[0], now)
        self.assertEqual(
            ctx.exception.details, {"eventId": event_id, "attendeeId": attendee_ids[0]}
        )
        with self.Session() as session:
            self.assertEqual(session.scalar(select(func.count(Winner.id))), 1)

    def test_is_winner_conflict_ignores_other_constraints(self) -> None:
        class _Orig(Exception):
            pass

        winner_dup = IntegrityError(
            "INSERT", {}, _Orig("UNIQUE constraint failed: winners.event_id, winners.attendee_id")
        )
        named_dup = IntegrityError(
            "INSERT", {}, _Orig('duplicate key value violates unique constraint "uq_winners_event_attendee"')
        )
        other = IntegrityError(
            "INSERT", {}, _Orig("FOREIGN KEY constraint failed")
        )
        self.assertTrue(is_winner_conflict(winner_dup))
        self.assertTrue(is_winner_conflict(named_dup))
        self.assertFalse(is_winner_conflict(other))

    def test_count_for_prize(self) -> None:
        event_id, prize_ids, _ = self.seed_event(
            attendees=3, prizes=[("Phone", 2), ("Watch", 1)]
        )
        self.engine_.draw(event_id, prize_ids[0], "admin")
        self.engine_.draw(event_id, prize_ids[0], "admin")
        with self.Session() as session:
            self.assertEqual(WinnerLedger.count_for_prize(session, prize_ids[0]), 2)
            self.assertEqual(WinnerLedger.count_for_prize(session, prize_ids[1]), 0)

    def test_event_stats(self) -> None:
        event_id, prize_ids, _ = self.seed_event(
            attendees=4, prizes=[("Phone", 2), ("Watch", 1)]
        )
        self.engine_.draw(event_id, prize_ids[0], "admin")

        stats = self.ledger.event_stats(event_id)
        self.assertEqual(stats.total_attendees, 4)
        self.assertEqual(stats.total_winners, 1)
        self.assertEqual(stats.total_prizes, 2)
        self.assertEqual(
            stats.to_json(),
            {"totalAttendees": 4, "totalWinners": 1, "totalPrizes": 2},
        )
        with self.assertRaises(EventNotFound):
            self.ledger.event_stats(999)


class ResetEventTests(RaffleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ledger = WinnerLedger(self.Session)
        self.draws = DrawEngine(self.Session)

    def assert_clean(self, event_id: int) -> None:
        with self.Session() as session:
            self.assertEqual(
                session.scalar(
                    select(func.count(Winner.id)).where(Winner.event_id == event_id)
                ),
                0,
            )
            self.assertFalse(
                session.scalar(
                    select(func.count(Attendee.id)).where(
                        Attendee.event_id == event_id, Attendee.has_won.is_(True)
                    )
                )
            )
            for prize in session.scalars(
                select(Prize).where(Prize.event_id == event_id)
            ):
                self.assertEqual(prize.quantity_remaining, prize.quantity_total)

    def test_reset_restores_state_and_is_idempotent(self) -> None:
        event_id, prize_ids, _ = self.seed_event(
            attendees=4, prizes=[("Phone", 2), ("Watch", 1)]
        )
        self.draws.draw(event_id, prize_ids[0], "admin")
        self.draws.draw(event_id, prize_ids[0], "admin")
        self.draws.draw(event_id, prize_ids[1], "admin")

        summary = self.ledger.reset_event(event_id)
        self.assertEqual(summary.winners_removed, 3)
        self.assertEqual(summary.prizes_restored, 2)
        self.assert_clean(event_id)

        again = self.ledger.reset_event(event_id)
        self.assertEqual(again.winners_removed, 0)
        self.assert_clean(event_id)

        with self.Session() as session:
            runs = session.scalar(select(func.count(DrawRun.id)))
        self.assertEqual(runs, 3)

    def test_draws_work_after_reset(self) -> None:
        event_id, (prize_id,), _ = self.seed_event(attendees=2, prizes=[("Mug", 2)])
        self.draws.draw(event_id, prize_id, "admin")
        self.draws.draw(event_id, prize_id, "admin")
        self.ledger.reset_event(event_id)

        outcome = self.draws.draw(event_id, prize_id, "admin")
        self.assertEqual(outcome.prize_remaining, 1)

    def test_reset_leaves_other_events_alone(self) -> None:
        event_a, (prize_a,), _ = self.seed_event(code="alpha")
        event_b, (prize_b,), _ = self.seed_event(code="beta")
        self.draws.draw(event_a, prize_a, "admin")
        self.draws.draw(event_b, prize_b, "admin")

        self.ledger.reset_event(event_a)

        self.assert_clean(event_a)
        self.assertEqual(len(self.ledger.list_winners(event_b)), 1)
        self.assertEqual(self.get(Prize, prize_b).quantity_remaining, 0)

    def test_reset_unknown_event(self) -> None:
        with self.assertRaises(EventNotFound):
            self.ledger.reset_event(31337)

    def test_reset_keeps_event_status(self) -> None:
        event_id, _, _ = self.seed_event(status="ended")
        self.ledger.reset_event(event_id)
        self.assertEqual(self.get(Event, event_id).status, "ended")


if __name__ == "__main__":
    unittest.main()
