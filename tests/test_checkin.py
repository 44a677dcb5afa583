from __future__ import annotations

import unittest

from raffle_fixtures import RaffleTestCase

from eventraffle.checkin import (
    check_in_attendee,
    create_normalized_key,
    format_ticket_number,
    is_valid_vietnam_phone,
    normalize_phone_number,
    set_raffle_exclusion,
    slugify,
)
from eventraffle.draw.eligibility import eligible_attendees
from eventraffle.draw.errors import CheckinRejected, EventNotFound, EventNotLive
from eventraffle.models import Attendee


class CheckinHelperTests(unittest.TestCase):
    def test_slugify_strips_accents(self) -> None:
        self.assertEqual(slugify("  Nguyễn Văn  An "), "nguyen-van-an")
        self.assertEqual(slugify("R&D / QA"), "rd-qa")

    def test_normalized_key(self) -> None:
        self.assertEqual(
            create_normalized_key("Trần Thị Bích", "Kế toán"),
            "tran-thi-bich|ke-toan",
        )

    def test_normalize_phone_number(self) -> None:
        self.assertEqual(normalize_phone_number("0912 345 678"), "84912345678")
        self.assertEqual(normalize_phone_number("+84 912-345-678"), "84912345678")
        self.assertEqual(normalize_phone_number("12345"), "12345")

    def test_vietnam_phone_validation(self) -> None:
        self.assertTrue(is_valid_vietnam_phone("0912345678"))
        self.assertTrue(is_valid_vietnam_phone("+84 386 123 456"))
        self.assertFalse(is_valid_vietnam_phone("0212345678"))
        self.assertFalse(is_valid_vietnam_phone("091234567"))

    def test_format_ticket_number(self) -> None:
        self.assertEqual(format_ticket_number(7), "00007")
        self.assertEqual(format_ticket_number(42, digits=3), "042")
        self.assertEqual(format_ticket_number(123456), "123456")


class CheckInAttendeeTests(RaffleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.event_id, _, _ = self.seed_event(code="gala", attendees=0)

    def test_assigns_sequential_tickets(self) -> None:
        with self.Session.begin() as session:
            first = check_in_attendee(session, "GALA", "An Nguyen", "Sales", "0912345678")
            second = check_in_attendee(
                session, "gala", "Binh Tran", "Marketing", "0987654321"
            )
            self.assertEqual(first.ticket_number, 1)
            self.assertEqual(second.ticket_number, 2)
            self.assertEqual(first.normalized_key, "an-nguyen|sales")
            self.assertEqual(first.normalized_phone, "84912345678")
            self.assertFalse(first.has_won)
            self.assertFalse(first.excluded_from_raffle)

        with self.Session() as session:
            pool = eligible_attendees(session, self.event_id)
        self.assertEqual([a.ticket_number for a in pool], [1, 2])

    def test_rejects_invalid_input(self) -> None:
        cases = [
            ("A", "Sales", "0912345678"),
            ("An Nguyen", "  ", "0912345678"),
            ("An Nguyen", "Sales", "091234"),
        ]
        with self.Session() as session:
            for name, department, phone in cases:
                with self.subTest(name=name, department=department, phone=phone):
                    with self.assertRaises(CheckinRejected) as ctx:
                        check_in_attendee(session, "gala", name, department, phone)
                    self.assertEqual(ctx.exception.status_code, 400)

    def test_rejects_duplicates(self) -> None:
        with self.Session.begin() as session:
            check_in_attendee(session, "gala", "An Nguyen", "Sales", "0912345678")

        with self.Session() as session:
            with self.assertRaises(CheckinRejected) as ctx:
                check_in_attendee(session, "gala", "Someone Else", "HR", "091.234.5678")
            self.assertEqual(ctx.exception.status_code, 409)

            with self.assertRaises(CheckinRejected) as ctx:
                check_in_attendee(session, "gala", "an  nguyen", "SALES", "0900000000")
            self.assertEqual(ctx.exception.status_code, 409)

    def test_event_must_exist_and_be_live(self) -> None:
        self.seed_event(code="closed", status="ended", attendees=0)
        with self.Session() as session:
            with self.assertRaises(EventNotFound):
                check_in_attendee(session, "nope", "An Nguyen", "Sales", "0912345678")
            with self.assertRaises(EventNotLive):
                check_in_attendee(session, "closed", "An Nguyen", "Sales", "0912345678")


class RaffleExclusionTests(RaffleTestCase):
    def test_toggle_exclusion(self) -> None:
        event_id, _, attendee_ids = self.seed_event(attendees=2)
        with self.Session.begin() as session:
            set_raffle_exclusion(session, attendee_ids[0], True)

        with self.Session() as session:
            pool = eligible_attendees(session, event_id)
        self.assertEqual([a.id for a in pool], [attendee_ids[1]])

        with self.Session.begin() as session:
            set_raffle_exclusion(session, attendee_ids[0], False)
        self.assertFalse(self.get(Attendee, attendee_ids[0]).excluded_from_raffle)

    def test_winner_cannot_be_toggled(self) -> None:
        _, _, attendee_ids = self.seed_event(attendees=1)
        with self.Session.begin() as session:
            session.get(Attendee, attendee_ids[0]).has_won = True

        with self.Session() as session:
            with self.assertRaises(CheckinRejected) as ctx:
                set_raffle_exclusion(session, attendee_ids[0], True)
            self.assertEqual(ctx.exception.status_code, 409)
            with self.assertRaises(CheckinRejected) as ctx:
                set_raffle_exclusion(session, 999, True)
            self.assertEqual(ctx.exception.status_code, 404)


if __name__ == "__main__":
    unittest.main()
