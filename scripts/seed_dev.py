from datetime import datetime, timedelta, timezone
from decimal import Decimal

from golfdraw.db.engine import get_sessionmaker, make_engine
from golfdraw.models import (
    Base,
    Charity,
    DrawSettings,
    JackpotTracker,
    Participant,
    Score,
    Subscription,
)
from golfdraw.workflows import create_draw_if_absent

PLAYERS = [
    ("Alice Fairway", "alice@example.com", "monthly", [36, 12, 41, 27, 8]),
    ("Bob Bunker", "bob@example.com", "annual", [22, 19, 33, 30, 44]),
    ("Cara Green", "cara@example.com", "monthly", [5, 17, 29, 38, 40]),
    ("Dan Divot", "dan@example.com", "annual", [11, 23, 34, 36, 42]),
    ("Eve Eagle", "eve@example.com", "monthly", [2, 14, 26, 31, 45]),
    # only three scores: not eligible until two more rounds are recorded
    ("Finn Fringe", "finn@example.com", "annual", [18, 25, 39]),
]


def main() -> None:
    """Seed the development database with a charity, players and an open draw."""
    engine = make_engine()

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        charity = Charity(
            name="Junior Golf Foundation",
            description="Coaching and equipment for young golfers",
        )
        session.add(charity)
        session.flush()

        DrawSettings.current(session)
        JackpotTracker.current(session)

        for index, (name, email, plan, scores) in enumerate(PLAYERS):
            participant = Participant(
                full_name=name,
                email=email,
                charity_id=charity.id,
                donation_percentage=Decimal("10") + index,
                created_at=now,
                updated_at=now,
            )
            session.add(participant)
            session.flush()
            session.add(
                Subscription(
                    participant=participant,
                    plan=plan,
                    current_period_end=now + timedelta(days=30 if plan == "monthly" else 365),
                )
            )
            # oldest first so the newest score gets the latest timestamp
            for offset, value in enumerate(scores):
                session.add(
                    Score(
                        participant=participant,
                        score=value,
                        created_at=now - timedelta(days=len(scores) - offset),
                    )
                )

        session.add(
            Participant(full_name="Operator", email="admin@example.com", role="admin")
        )

        draw = create_draw_if_absent(session, now=now)
        print(f"Seeded {len(PLAYERS)} players and open draw {draw.month_year}")

    engine.dispose()


if __name__ == "__main__":
    main()
