from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from golfdraw.db.engine import get_sessionmaker, make_engine
from golfdraw.draw import resolve_eligible_participants
from golfdraw.models import Base, Charity, Draw, Participant, Score, Subscription

BASE_TIME = datetime(2026, 1, 15, tzinfo=timezone.utc)


class EligibilityTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)

    def tearDown(self) -> None:
        self.engine.dispose()

    def _participant(
        self,
        session,
        name: str,
        scores: list[int],
        *,
        plan: Optional[str] = "annual",
        sub_status: str = "active",
        status: str = "active",
        role: str = "player",
        assigned_draw_id: Optional[int] = None,
        charity_id: Optional[int] = None,
    ) -> Participant:
        participant = Participant(
            full_name=name,
            email=f"{name.lower()}@example.com",
            status=status,
            role=role,
            charity_id=charity_id,
        )
        session.add(participant)
        session.flush()
        # oldest first so the last score in the list is the newest
        for offset, value in enumerate(scores):
            session.add(
                Score(
                    participant_id=participant.id,
                    score=value,
                    created_at=BASE_TIME + timedelta(hours=offset),
                )
            )
        if plan is not None:
            session.add(
                Subscription(
                    participant_id=participant.id,
                    plan=plan,
                    status=sub_status,
                    assigned_draw_id=assigned_draw_id,
                )
            )
        session.flush()
        return participant

    def test_only_qualifying_participants_enter(self) -> None:
        with self.Session.begin() as session:
            charity = Charity(name="Fairway Fund")
            session.add(charity)
            feb = Draw(month_year="February 2026")
            jan = Draw(month_year="January 2026")
            session.add_all([feb, jan])
            session.flush()

            annual = self._participant(
                session, "Annual", [10, 20, 30, 40, 41], charity_id=charity.id
            )
            trialing = self._participant(
                session, "Trial", [1, 2, 3, 4, 5], sub_status="trialing"
            )
            monthly = self._participant(session, "Monthly", [5, 6, 7, 8, 9], plan="monthly")
            assigned_here = self._participant(
                session,
                "Here",
                [11, 12, 13, 14, 15],
                plan="monthly",
                assigned_draw_id=feb.id,
            )
            self._participant(
                session,
                "Elsewhere",
                [11, 12, 13, 14, 15],
                plan="monthly",
                assigned_draw_id=jan.id,
            )
            self._participant(session, "Short", [10, 20, 30, 40])
            self._participant(session, "Suspended", [1, 2, 3, 4, 5], status="suspended")
            self._participant(session, "Admin", [1, 2, 3, 4, 5], role="admin")
            self._participant(session, "PastDue", [1, 2, 3, 4, 5], sub_status="past_due")
            self._participant(session, "Cancelled", [1, 2, 3, 4, 5], sub_status="cancelled")
            self._participant(session, "Unsubscribed", [1, 2, 3, 4, 5], plan=None)

            result = resolve_eligible_participants(session, feb.id)

            self.assertFalse(result.fetch_failed)
            self.assertEqual(
                [p.participant_id for p in result.participants],
                [annual.id, trialing.id, monthly.id, assigned_here.id],
            )
            self.assertEqual(result.count, 4)

            first = result.participants[0]
            self.assertEqual(first.scores, (41, 40, 30, 20, 10))
            self.assertEqual(first.charity_id, charity.id)
            self.assertEqual(first.donation_percentage, Decimal("10"))
            self.assertEqual(first.monthly_subscription_ids, ())
            self.assertEqual(len(result.participants[2].monthly_subscription_ids), 1)

    def test_unsaved_cycle_only_counts_unassigned_monthly_plans(self) -> None:
        with self.Session.begin() as session:
            jan = Draw(month_year="January 2026")
            session.add(jan)
            session.flush()
            fresh = self._participant(session, "Fresh", [1, 2, 3, 4, 5], plan="monthly")
            self._participant(
                session,
                "Used",
                [1, 2, 3, 4, 5],
                plan="monthly",
                assigned_draw_id=jan.id,
            )

            result = resolve_eligible_participants(session)
            self.assertEqual([p.participant_id for p in result.participants], [fresh.id])

    def test_nobody_qualifies(self) -> None:
        with self.Session.begin() as session:
            self._participant(session, "Short", [10, 20])

            result = resolve_eligible_participants(session, None)
            self.assertFalse(result.fetch_failed)
            self.assertEqual(result.count, 0)

    def test_database_failure_is_flagged(self) -> None:
        with self.Session.begin() as session:
            with patch.object(
                session,
                "scalars",
                side_effect=OperationalError("SELECT", {}, Exception("disk I/O error")),
            ):
                result = resolve_eligible_participants(session, 1)

            self.assertTrue(result.fetch_failed)
            self.assertEqual(result.participants, [])
            self.assertIn("disk I/O error", result.error or "")


if __name__ == "__main__":
    unittest.main()
