import csv
import io
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select

from golfdraw.db.engine import get_sessionmaker, make_engine
from golfdraw.draw import DrawNotFoundError, DrawNotPublishedError, InvalidSettingsError
from golfdraw.models import (
    ActivityLog,
    Base,
    Charity,
    Draw,
    DrawSettings,
    DrawStatus,
    Participant,
    Score,
    Subscription,
)
from golfdraw.workflows import (
    WINNER_EXPORT_FIELDS,
    create_draw_if_absent,
    current_draw,
    export_draw_winners,
    get_draw_settings,
    jackpot_history,
    publish_draw,
    record_score,
    update_draw_settings,
    write_winners_csv,
)

FEB_10 = datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)


class FixedNumbers:
    def __init__(self, numbers):
        self.numbers = list(numbers)

    def sample(self, population, k):
        return list(self.numbers)


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)

    def tearDown(self):
        self.engine.dispose()

    def _participant(self, session, name="Ann", **kwargs):
        participant = Participant(full_name=name, email=f"{name}@example.com", **kwargs)
        session.add(participant)
        session.flush()
        return participant


class RecordScoreTests(WorkflowTestCase):
    def test_keeps_latest_five_scores(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        with self.Session.begin() as session:
            participant = self._participant(session)
            for day, value in enumerate([30, 31, 32, 33, 34, 35]):
                record_score(session, participant, value, now=start + timedelta(days=day))

            self.assertEqual(participant.latest_scores, [35, 34, 33, 32, 31])
            stored = session.scalar(
                select(func.count())
                .select_from(Score)
                .where(Score.participant_id == participant.id)
            )
            self.assertEqual(stored, 5)

    def test_rejects_invalid_scores(self):
        with self.Session.begin() as session:
            participant = self._participant(session)
            for bad in (0, 46, -3, True, "30", 30.0):
                with self.subTest(score=bad):
                    with self.assertRaises(ValueError):
                        record_score(session, participant, bad)  # type: ignore[arg-type]
            self.assertEqual(participant.latest_scores, [])

    def test_rejects_unsaved_participant(self):
        with self.Session.begin() as session:
            with self.assertRaises(ValueError):
                record_score(session, Participant(full_name="Ghost"), 30)

    def test_cutoff_locks_submissions_before_the_draw(self):
        with self.Session.begin() as session:
            participant = self._participant(session)
            locked = datetime(2026, 2, 9, 2, 0, tzinfo=timezone.utc)
            with self.assertRaises(ValueError):
                record_score(session, participant, 30, now=locked, enforce_cutoff=True)

            # without enforcement the score is stored regardless
            record_score(session, participant, 30, now=locked)
            self.assertEqual(participant.latest_scores, [30])

            open_at = datetime(2026, 2, 12, tzinfo=timezone.utc)
            record_score(session, participant, 31, now=open_at, enforce_cutoff=True)
            self.assertEqual(participant.latest_scores, [31, 30])


class DrawSettingsWorkflowTests(WorkflowTestCase):
    def test_update_settings(self):
        with self.Session.begin() as session:
            settings = update_draw_settings(
                session,
                base_amount_per_sub=Decimal("7.50"),
                tier1_percent=Decimal("50"),
                tier2_percent=Decimal("30"),
                tier3_percent=Decimal("20"),
            )
            self.assertEqual(settings.base_amount_per_sub, Decimal("7.50"))
            self.assertEqual(settings.tier1_percent, Decimal("50"))
            self.assertEqual(settings.jackpot_cap, Decimal("250000.00"))
            self.assertEqual(get_draw_settings(session).id, settings.id)

            logged = session.scalars(
                select(ActivityLog).where(ActivityLog.action == "settings_updated")
            ).one()
            self.assertEqual(logged.extra["tier1_percent"], "50")

    def test_rejected_update_leaves_settings_unchanged(self):
        with self.Session.begin() as session:
            with self.assertRaises(InvalidSettingsError):
                update_draw_settings(session, tier1_percent=Decimal("60"))
            with self.assertRaises(InvalidSettingsError):
                update_draw_settings(session, jackpot_cap=Decimal("-1"))

            settings = DrawSettings.current(session)
            self.assertEqual(settings.tier1_percent, Decimal("40"))
            self.assertEqual(settings.jackpot_cap, Decimal("250000.00"))
            logged = session.scalar(
                select(func.count())
                .select_from(ActivityLog)
                .where(ActivityLog.action == "settings_updated")
            )
            self.assertEqual(logged, 0)


class DrawLookupTests(WorkflowTestCase):
    def test_create_draw_if_absent_is_idempotent(self):
        with self.Session.begin() as session:
            first = create_draw_if_absent(session, now=FEB_10)
            second = create_draw_if_absent(session, now=FEB_10)

            self.assertEqual(first.month_year, "February 2026")
            self.assertEqual(first.id, second.id)
            self.assertEqual(first.status, DrawStatus.OPEN)
            created = session.scalar(
                select(func.count())
                .select_from(ActivityLog)
                .where(ActivityLog.action == "draw_created")
            )
            self.assertEqual(created, 1)

    def test_current_draw_resolution(self):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        with self.Session.begin() as session:
            self.assertIsNone(current_draw(session))

            jan = Draw(
                month_year="January 2026",
                status=DrawStatus.PUBLISHED,
                created_at=base,
            )
            session.add(jan)
            session.flush()
            self.assertEqual(current_draw(session).id, jan.id)

            mar = Draw(month_year="March 2026", created_at=base + timedelta(days=60))
            feb = Draw(month_year="February 2026", created_at=base + timedelta(days=30))
            session.add_all([mar, feb])
            session.flush()
            # oldest open draw first
            self.assertEqual(current_draw(session).id, feb.id)

            mar.status = DrawStatus.PROCESSING
            session.flush()
            self.assertEqual(current_draw(session).id, mar.id)


class WinnerExportTests(WorkflowTestCase):
    def _published_draw(self, session):
        charity = Charity(name="Fairway Fund")
        session.add(charity)
        session.flush()
        start = datetime(2026, 1, 20, tzinfo=timezone.utc)
        cards = {
            "Ann": [3, 7, 12, 25, 40],
            "Bea": [3, 7, 12, 25, 41],
            "Cal": [3, 7, 12, 30, 41],
            "Dev": [1, 2, 4, 5, 6],
        }
        for name, scores in cards.items():
            participant = self._participant(session, name, charity_id=charity.id)
            session.add(Subscription(participant_id=participant.id, plan="annual"))
            for minute, value in enumerate(scores):
                record_score(
                    session, participant, value, now=start + timedelta(minutes=minute)
                )
        draw = create_draw_if_absent(session, "February 2026")
        outcome = publish_draw(
            session,
            draw.id,
            clock=lambda: FEB_10,
            rng=FixedNumbers([3, 7, 12, 25, 40]),
        )
        self.assertTrue(outcome.success, outcome.message)
        return draw

    def test_export_rows_and_csv(self):
        with self.Session.begin() as session:
            draw = self._published_draw(session)

            rows = export_draw_winners(session, draw.id)
            self.assertEqual([r["full_name"] for r in rows], ["Ann", "Bea", "Cal"])
            self.assertEqual([r["tier"] for r in rows], [1, 2, 3])
            top = rows[0]
            self.assertEqual(top["month_year"], "February 2026")
            self.assertEqual(top["matches"], 5)
            self.assertEqual(top["scores"], "40 25 12 7 3")
            self.assertEqual(top["gross_prize"], Decimal("8.00"))
            self.assertEqual(top["charity"], "Fairway Fund")
            self.assertEqual(top["verification_status"], "pending")

            buffer = io.StringIO()
            self.assertEqual(write_winners_csv(rows, buffer), 3)
            buffer.seek(0)
            reader = csv.DictReader(buffer)
            self.assertEqual(tuple(reader.fieldnames or ()), WINNER_EXPORT_FIELDS)
            parsed = list(reader)
            self.assertEqual(len(parsed), 3)
            self.assertEqual(parsed[0]["net_payout"], "7.20")
            self.assertEqual(parsed[0]["email"], "ann@example.com")

    def test_export_requires_published_draw(self):
        with self.Session.begin() as session:
            draw = create_draw_if_absent(session, "February 2026")
            with self.assertRaises(DrawNotPublishedError):
                export_draw_winners(session, draw.id)
            with self.assertRaises(DrawNotFoundError):
                export_draw_winners(session, draw.id + 100)

    def test_jackpot_history(self):
        with self.Session.begin() as session:
            self.assertEqual(jackpot_history(session), [])
            draw = self._published_draw(session)

            history = jackpot_history(session)
            self.assertEqual(len(history), 1)
            entry = history[0]
            self.assertEqual(entry["draw_id"], draw.id)
            self.assertEqual(entry["month_year"], "February 2026")
            self.assertEqual(entry["jackpot_before"], Decimal("0"))
            self.assertEqual(entry["jackpot_after"], Decimal("0"))
            self.assertEqual(entry["tier1_winners"], 1)
            self.assertEqual(entry["published_at"], "2026-02-10T12:00:00+00:00")


if __name__ == "__main__":
    unittest.main()
