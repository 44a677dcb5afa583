from __future__ import annotations

import unittest

from raffle_fixtures import ClaimingSelector, FixedSelector, RaffleTestCase

from eventraffle.draw.engine import DrawEngine
from eventraffle.draw.errors import PrizeExhausted, StorageUnavailable
from eventraffle.models import Prize
from eventraffle.workflows import (
    create_services,
    error_response,
    list_draw_history,
    reset_event_draws,
    resize_prize,
    run_draw,
    select_prize_for_next_draw,
)


class ErrorResponseTests(unittest.TestCase):
    def test_domain_error(self) -> None:
        payload = error_response(PrizeExhausted())
        self.assertEqual(
            payload,
            {
                "errorKind": "PrizeExhausted",
                "message": "This prize has no units left",
                "transient": False,
                "status": 409,
            },
        )

    def test_transient_error(self) -> None:
        payload = error_response(StorageUnavailable())
        self.assertEqual(payload["status"], 503)
        self.assertTrue(payload["transient"])

    def test_unexpected_error_is_opaque(self) -> None:
        payload = error_response(KeyError("secret column"))
        self.assertEqual(payload["errorKind"], "InternalError")
        self.assertEqual(payload["status"], 500)
        self.assertNotIn("secret", payload["message"])


class WorkflowTests(RaffleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.services = create_services(self.Session)

    def test_run_draw_success_shape(self) -> None:
        event_id, (prize_id,), attendee_ids = self.seed_event(prizes=[("Bicycle", 2)])
        engine = DrawEngine(self.Session, selector=FixedSelector(2))

        result = run_draw(engine, event_id, prize_id, "mc")

        self.assertEqual(result["prizeRemaining"], 1)
        self.assertEqual(result["winner"]["attendeeId"], attendee_ids[2])
        self.assertEqual(result["winner"]["prizeName"], "Bicycle")
        self.assertEqual(result["winner"]["snapshot"]["ticketNumber"], 3)

    def test_run_draw_failure_shape(self) -> None:
        event_id, (prize_id,), _ = self.seed_event(status="draft")

        result = run_draw(self.services.engine, event_id, prize_id, "mc")

        self.assertEqual(result["errorKind"], "EventNotLive")
        self.assertEqual(result["status"], 409)
        self.assertFalse(result["transient"])
        self.assertNotIn("winner", result)

    def test_run_draw_retries_a_conflict(self) -> None:
        event_id, (prize_id,), attendee_ids = self.seed_event(prizes=[("Kindle", 3)])
        rival = DrawEngine(self.Session, selector=FixedSelector(0))
        selector = ClaimingSelector(rival, event_id, prize_id, claims=1)
        engine = DrawEngine(self.Session, selector=selector)

        result = run_draw(engine, event_id, prize_id, "mc")

        self.assertNotIn("errorKind", result)
        self.assertEqual(result["winner"]["attendeeId"], attendee_ids[1])
        self.assertEqual(result["prizeRemaining"], 1)

    def test_run_draw_unexpected_error(self) -> None:
        class BrokenSelector:
            def pick(self, n: int) -> int:
                raise RuntimeError("entropy source gone")

        event_id, (prize_id,), _ = self.seed_event()
        engine = DrawEngine(self.Session, selector=BrokenSelector())

        with self.assertLogs("eventraffle.workflows", level="ERROR"):
            result = run_draw(engine, event_id, prize_id, "mc")
        self.assertEqual(result["errorKind"], "InternalError")
        self.assertEqual(result["status"], 500)

    def test_history_and_selection(self) -> None:
        event_id, prize_ids, _ = self.seed_event(prizes=[("Phone", 1), ("Watch", 1)])

        selected = select_prize_for_next_draw(
            self.services.engine, event_id, prize_ids[0]
        )
        self.assertEqual(
            selected,
            {"success": True, "selectedPrizeId": prize_ids[0], "selectedPrizeName": "Phone"},
        )
        run_draw(self.services.engine, event_id, prize_ids[0], "mc")

        history = list_draw_history(self.services.ledger, event_id)
        self.assertEqual(history["selectedPrizeId"], prize_ids[0])
        self.assertEqual(len(history["winners"]), 1)
        self.assertEqual(
            list_draw_history(self.services.ledger, event_id, prize_ids[1])["winners"],
            [],
        )

        cleared = select_prize_for_next_draw(self.services.engine, event_id, None)
        self.assertIsNone(cleared["selectedPrizeId"])

    def test_selection_failure(self) -> None:
        event_id, _, _ = self.seed_event()
        result = select_prize_for_next_draw(self.services.engine, event_id, 999)
        self.assertFalse(result["success"])
        self.assertEqual(result["errorKind"], "PrizeNotFound")

    def test_history_unknown_event(self) -> None:
        result = list_draw_history(self.services.ledger, 404)
        self.assertEqual(result["errorKind"], "EventNotFound")
        self.assertEqual(result["status"], 404)

    def test_reset(self) -> None:
        event_id, (prize_id,), _ = self.seed_event()
        run_draw(self.services.engine, event_id, prize_id, "mc")

        self.assertEqual(reset_event_draws(self.services.ledger, event_id), {"success": True})
        self.assertEqual(self.get(Prize, prize_id).quantity_remaining, 1)

        failed = reset_event_draws(self.services.ledger, 999)
        self.assertFalse(failed["success"])
        self.assertEqual(failed["errorKind"], "EventNotFound")

    def test_resize(self) -> None:
        event_id, (prize_id,), _ = self.seed_event(prizes=[("Mug", 2)])
        run_draw(self.services.engine, event_id, prize_id, "mc")

        resized = resize_prize(self.services.inventory, prize_id, 4)
        self.assertEqual(resized["quantityTotal"], 4)
        self.assertEqual(resized["quantityRemaining"], 3)

        rejected = resize_prize(self.services.inventory, prize_id, 0)
        self.assertEqual(rejected["errorKind"], "InvalidPrizeQuantity")
        self.assertEqual(rejected["status"], 400)


if __name__ == "__main__":
    unittest.main()
