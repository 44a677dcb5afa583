import logging
import os

from eventraffle.checkin import check_in_attendee
from eventraffle.db.engine import get_sessionmaker, make_engine
from eventraffle.draw.random_selector import generate_event_code
from eventraffle.models import Base, Event, Prize

logger = logging.getLogger(__name__)

ATTENDEES = [
    ("Nguyen Van An", "Engineering", "0912345601"),
    ("Tran Thi Binh", "Engineering", "0912345602"),
    ("Le Van Cuong", "Sales", "0912345603"),
    ("Pham Thi Dung", "Sales", "0912345604"),
    ("Hoang Van Em", "Finance", "0912345605"),
    ("Vu Thi Giang", "Finance", "0912345606"),
    ("Dang Van Hai", "Operations", "0912345607"),
    ("Bui Thi Lan", "Operations", "0912345608"),
    ("Do Van Minh", "Marketing", "0912345609"),
    ("Ngo Thi Nga", "Marketing", "0912345610"),
]

PRIZES = [
    ("Grand prize", 1),
    ("First prize", 2),
    ("Second prize", 3),
    ("Consolation prize", 5),
]


def main() -> None:
    """Seed the development database with a live demo event."""
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    engine = make_engine()

    # Drop and recreate all tables. The events -> prizes "on deck" key is
    # ON DELETE SET NULL, so dropping prizes before events is safe.
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        event = Event(code=f"demo-{generate_event_code(6)}", name="Year End Party", status="live")
        session.add(event)
        session.flush()

        for order, (name, quantity) in enumerate(PRIZES):
            session.add(
                Prize(
                    event_id=event.id,
                    name=name,
                    quantity_total=quantity,
                    display_order=order,
                )
            )

        for full_name, department, phone in ATTENDEES:
            check_in_attendee(session, event.code, full_name, department, phone)

        logger.info(f"Seeded event '{event.code}' (id={event.id})")


if __name__ == "__main__":
    main()
