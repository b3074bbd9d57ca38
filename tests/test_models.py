import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from golfdraw.db.engine import get_sessionmaker, make_engine
from golfdraw.draw import ConcurrentUpdateError, InvalidTransitionError
from golfdraw.draw.lifecycle import _move_jackpot, transition
from golfdraw.models import (
    ActivityLog,
    Base,
    Charity,
    Draw,
    DrawEntry,
    DrawSettings,
    DrawStatus,
    JackpotTracker,
    Participant,
    Score,
    Subscription,
)
from golfdraw.models.activity import log_activity


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)

    def tearDown(self):
        self.engine.dispose()

    def test_participant_email_is_normalized(self):
        with self.Session() as session:
            participant = Participant(full_name="Ann Lee", email="  Ann@Example.COM ")
            session.add(participant)
            session.commit()

            self.assertEqual(participant.email, "ann@example.com")
            found = Participant.get_by_email(session, "ANN@example.com")
            self.assertIsNotNone(found)
            assert found is not None
            self.assertEqual(found.id, participant.id)

    def test_participant_defaults(self):
        with self.Session() as session:
            participant = Participant(full_name="Bo")
            session.add(participant)
            session.commit()

            self.assertEqual(participant.status, "active")
            self.assertEqual(participant.role, "player")
            self.assertEqual(participant.donation_percentage, Decimal("10"))
            self.assertFalse(participant.is_suspended)

    def test_latest_scores_newest_first(self):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        with self.Session() as session:
            participant = Participant(full_name="Cy")
            session.add(participant)
            session.flush()
            for offset, value in enumerate([10, 20, 30, 40, 41, 42]):
                session.add(
                    Score(
                        participant_id=participant.id,
                        score=value,
                        created_at=base + timedelta(days=offset),
                    )
                )
            session.commit()
            session.refresh(participant)

            self.assertEqual(participant.latest_scores, [42, 41, 40, 30, 20])

    def test_subscription_qualification(self):
        annual = Subscription(plan="annual")
        self.assertTrue(annual.qualifies_for(None))
        self.assertEqual(annual.draws_remaining, 12)

        monthly = Subscription(plan="monthly")
        self.assertEqual(monthly.draws_remaining, 1)
        self.assertTrue(monthly.qualifies_for(None))
        self.assertTrue(monthly.qualifies_for(7))

        monthly.assigned_draw_id = 7
        self.assertTrue(monthly.qualifies_for(7))
        self.assertFalse(monthly.qualifies_for(8))

        trialing = Subscription(plan="annual", status="trialing")
        self.assertTrue(trialing.qualifies_for(3))
        for status in ("past_due", "cancelled", "expired"):
            with self.subTest(status=status):
                self.assertFalse(
                    Subscription(plan="annual", status=status).qualifies_for(3)
                )

    def test_draw_month_year_is_unique(self):
        with self.Session() as session:
            session.add(Draw(month_year="February 2026"))
            session.commit()

            session.add(Draw(month_year="February 2026"))
            with self.assertRaises(IntegrityError):
                session.commit()
            session.rollback()

    def test_draw_status_round_trip(self):
        with self.Session() as session:
            draw = Draw(month_year="March 2026")
            session.add(draw)
            session.commit()
            draw_id = draw.id

        with self.Session() as session:
            loaded = session.get(Draw, draw_id)
            assert loaded is not None
            self.assertIs(loaded.status, DrawStatus.OPEN)
            self.assertEqual(loaded.winning_numbers, [])
            self.assertFalse(loaded.is_published)
            found = Draw.get_by_month_year(session, "March 2026")
            self.assertIsNotNone(found)

    def test_draw_entries_are_deleted_with_the_draw(self):
        with self.Session() as session:
            participant = Participant(full_name="Di")
            draw = Draw(month_year="April 2026")
            session.add_all([participant, draw])
            session.flush()
            session.add(
                DrawEntry(
                    draw_id=draw.id,
                    participant_id=participant.id,
                    scores=[1, 2, 3, 4, 5],
                    matches=3,
                    tier=3,
                )
            )
            session.commit()

            session.refresh(draw)
            self.assertEqual(len(draw.entries), 1)
            session.delete(draw)
            session.commit()
            self.assertEqual(session.scalars(select(DrawEntry)).all(), [])

    def test_status_transition_table(self):
        self.assertTrue(DrawStatus.OPEN.can_transition_to(DrawStatus.PROCESSING))
        self.assertTrue(DrawStatus.PROCESSING.can_transition_to(DrawStatus.PUBLISHED))
        self.assertTrue(DrawStatus.PROCESSING.can_transition_to(DrawStatus.OPEN))
        self.assertTrue(DrawStatus.PUBLISHED.can_transition_to(DrawStatus.OPEN))
        self.assertFalse(DrawStatus.OPEN.can_transition_to(DrawStatus.PUBLISHED))
        self.assertFalse(DrawStatus.PUBLISHED.can_transition_to(DrawStatus.PROCESSING))

        draw = Draw(month_year="May 2026")
        with self.assertRaises(InvalidTransitionError) as ctx:
            transition(draw, DrawStatus.PUBLISHED)
        self.assertEqual(ctx.exception.current, "open")
        self.assertEqual(ctx.exception.target, "published")
        self.assertIs(draw.status, DrawStatus.OPEN)

        transition(draw, DrawStatus.PROCESSING)
        self.assertIs(draw.status, DrawStatus.PROCESSING)

    def test_settings_defaults_created_once(self):
        with self.Session() as session:
            self.assertIsNone(DrawSettings.get(session))
            settings = DrawSettings.current(session)
            session.commit()

            self.assertEqual(settings.base_amount_per_sub, Decimal("5.00"))
            self.assertEqual(settings.tier1_percent, Decimal("40"))
            self.assertEqual(settings.tier2_percent, Decimal("35"))
            self.assertEqual(settings.tier3_percent, Decimal("25"))
            self.assertEqual(settings.jackpot_cap, Decimal("250000.00"))
            self.assertEqual(DrawSettings.current(session).id, settings.id)
            self.assertEqual(len(session.scalars(select(DrawSettings)).all()), 1)

    def test_settings_tier_sum_enforced_by_database(self):
        with self.Session() as session:
            session.add(
                DrawSettings(
                    base_amount_per_sub=Decimal("5"),
                    tier1_percent=Decimal("50"),
                    tier2_percent=Decimal("35"),
                    tier3_percent=Decimal("25"),
                    jackpot_cap=Decimal("1000"),
                )
            )
            with self.assertRaises(IntegrityError):
                session.flush()
            session.rollback()

    def test_jackpot_balance_and_version(self):
        with self.Session() as session:
            self.assertEqual(JackpotTracker.balance(session), Decimal("0"))
            tracker = JackpotTracker.current(session)
            self.assertEqual(tracker.version, 1)

            tracker.amount = Decimal("125.50")
            session.flush()
            self.assertEqual(tracker.version, 2)
            self.assertEqual(JackpotTracker.balance(session), Decimal("125.50"))
            self.assertEqual(JackpotTracker.current(session).id, tracker.id)

    def test_stale_jackpot_write_is_rejected(self):
        with self.Session() as session:
            tracker = JackpotTracker.current(session)
            session.commit()

            # another writer bumps the row behind the session's back
            session.execute(
                update(JackpotTracker.__table__)
                .where(JackpotTracker.__table__.c.id == tracker.id)
                .values(version=tracker.version + 1, amount=Decimal("99"))
            )

            with self.assertRaises(ConcurrentUpdateError):
                _move_jackpot(session, tracker, Decimal("10"), None)
            session.rollback()

    def test_charity_lookup(self):
        with self.Session() as session:
            session.add(Charity(name="Junior Golf Trust"))
            session.commit()

            found = Charity.get_by_name(session, "Junior Golf Trust")
            self.assertIsNotNone(found)
            assert found is not None
            self.assertTrue(found.is_active)

    def test_log_activity(self):
        with self.Session() as session:
            entry = log_activity(
                session,
                "draw_created",
                "Draw created for June 2026",
                resource_type="draw",
                resource_id=4,
            )
            session.commit()

            stored = session.scalars(select(ActivityLog)).one()
            self.assertEqual(stored.id, entry.id)
            self.assertEqual(stored.resource_id, 4)

            with self.assertRaises(ValueError):
                log_activity(session, "draw_deleted")


if __name__ == "__main__":
    unittest.main()
