from __future__ import annotations

import random
import unittest
from datetime import datetime, timezone

from golfdraw.draw import (
    InvalidMonthYearError,
    InvalidRangeError,
    InvalidWinningNumbersError,
    SCORE_RANGE_PRESETS,
    count_matches,
    evaluate_entries,
    generate_winning_numbers,
    score_popularity,
)
from golfdraw.draw.matching import count_tiers, tier_for_matches
from golfdraw.draw.numbers import validate_winning_numbers
from golfdraw.draw.schedule import (
    can_submit_scores,
    current_month_year,
    format_draw_date,
    is_future_cycle,
    next_draw_date,
    next_month_year,
    normalize_month_year,
    parse_month_year,
)


class WinningNumberTests(unittest.TestCase):
    def test_numbers_are_unique_sorted_and_in_range(self) -> None:
        rng = random.Random(2026)
        for _ in range(200):
            numbers = generate_winning_numbers(10, 20, rng=rng)
            self.assertEqual(len(numbers), 5)
            self.assertEqual(len(set(numbers)), 5)
            self.assertEqual(numbers, sorted(numbers))
            self.assertTrue(all(10 <= n <= 20 for n in numbers))

    def test_exact_five_value_range_returns_every_value(self) -> None:
        self.assertEqual(generate_winning_numbers(18, 22), [18, 19, 20, 21, 22])

    def test_every_value_can_be_drawn(self) -> None:
        rng = random.Random(7)
        seen: set[int] = set()
        for _ in range(300):
            seen.update(generate_winning_numbers(1, 12, rng=rng))
        self.assertEqual(seen, set(range(1, 13)))

    def test_range_too_small_raises(self) -> None:
        with self.assertRaises(InvalidRangeError):
            generate_winning_numbers(40, 43)
        with self.assertRaises(InvalidRangeError):
            generate_winning_numbers(45, 1)

    def test_invalid_range_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            generate_winning_numbers(1.5, 45)  # type: ignore[arg-type]

    def test_presets_all_hold_five_numbers(self) -> None:
        self.assertEqual(SCORE_RANGE_PRESETS["Full Range (1-45)"], (1, 45))
        for low, high in SCORE_RANGE_PRESETS.values():
            self.assertEqual(len(generate_winning_numbers(low, high)), 5)

    def test_validate_winning_numbers(self) -> None:
        self.assertEqual(
            validate_winning_numbers((40, 3, 25, 7, 12), 1, 45), [3, 7, 12, 25, 40]
        )
        bad_draws = (
            [3, 3, 7, 12, 25],
            [3, 7, 12, 25],
            [3, 7, 12, 25, 40, 41],
            [0, 7, 12, 25, 40],
            [3, 7, 12, 25, 46],
            [3, 7, 12, 25, True],
            [3, 7, 12, 25, 40.0],
        )
        for numbers in bad_draws:
            with self.subTest(numbers=numbers):
                with self.assertRaises(InvalidWinningNumbersError):
                    validate_winning_numbers(numbers, 1, 45)
        with self.assertRaises(InvalidWinningNumbersError):
            validate_winning_numbers([3, 7, 12, 25, 40], 5, 45)


class ScorePopularityTests(unittest.TestCase):
    def test_least_and_most_popular_with_ties_by_value(self) -> None:
        scores = [30, 30, 30, 12, 12, 12, 7, 40, 40, 3, 50]
        popularity = score_popularity(scores, 1, 45)
        self.assertEqual(popularity.least_popular, [3, 7, 40])
        self.assertEqual(popularity.most_popular, [12, 30])
        self.assertNotIn(50, popularity.frequency)
        self.assertEqual(popularity.frequency[30], 3)

    def test_no_scores_in_range(self) -> None:
        popularity = score_popularity([2, 3], 10, 45)
        self.assertEqual(popularity.least_popular, [])
        self.assertEqual(popularity.most_popular, [])


class MatchingTests(unittest.TestCase):
    def test_count_matches_is_set_intersection(self) -> None:
        self.assertEqual(count_matches([3, 7, 12, 25, 40], [3, 7, 12, 25, 40]), 5)
        self.assertEqual(count_matches([3, 7, 12, 25, 41], [3, 7, 12, 25, 40]), 4)
        self.assertEqual(count_matches([1, 2, 4, 5, 6], [3, 7, 12, 25, 40]), 0)

    def test_duplicate_scores_count_once(self) -> None:
        self.assertEqual(count_matches([7, 7, 7, 7, 7], [3, 7, 12, 25, 40]), 1)

    def test_tiers(self) -> None:
        self.assertEqual(tier_for_matches(5), 1)
        self.assertEqual(tier_for_matches(4), 2)
        self.assertEqual(tier_for_matches(3), 3)
        self.assertIsNone(tier_for_matches(2))
        self.assertIsNone(tier_for_matches(0))

    def test_evaluate_entries_and_count_tiers(self) -> None:
        evaluations = evaluate_entries(
            [
                (1, [3, 7, 12, 25, 40]),
                (2, [3, 7, 12, 25, 41]),
                (3, [3, 7, 12, 30, 41]),
                (4, [3, 7, 12, 30, 41]),
                (5, [1, 2, 4, 5, 6]),
            ],
            [40, 25, 12, 7, 3],
        )
        self.assertEqual([e.matches for e in evaluations], [5, 4, 3, 3, 0])
        self.assertEqual([e.tier for e in evaluations], [1, 2, 3, 3, None])
        counts = count_tiers(evaluations)
        self.assertEqual((counts.tier1, counts.tier2, counts.tier3), (1, 1, 2))


class ScheduleTests(unittest.TestCase):
    def test_month_labels(self) -> None:
        self.assertEqual(parse_month_year("February 2026"), (2026, 2))
        self.assertEqual(next_month_year("February 2026"), "March 2026")
        self.assertEqual(next_month_year("December 2026"), "January 2027")
        with self.assertRaises(ValueError):
            parse_month_year("Smarch 2026")

    def test_normalize_month_year(self) -> None:
        self.assertEqual(normalize_month_year("february 2026"), "February 2026")
        self.assertEqual(normalize_month_year(" MARCH  2027 "), "March 2027")
        for bad in ("2026-02", "Smarch 2026", "May", "May 2026 extra", "May 10000"):
            with self.subTest(label=bad):
                with self.assertRaises(InvalidMonthYearError):
                    normalize_month_year(bad)

    def test_current_month_uses_new_york_time(self) -> None:
        # 03:00 UTC on 1 March is still 28 February in New York
        now = datetime(2026, 3, 1, 3, 0, tzinfo=timezone.utc)
        self.assertEqual(current_month_year(now), "February 2026")

    def test_next_draw_date(self) -> None:
        before = datetime(2026, 2, 5, 12, 0, tzinfo=timezone.utc)
        draw = next_draw_date(before)
        self.assertEqual((draw.year, draw.month, draw.day, draw.hour), (2026, 2, 9, 20))

        after = datetime(2026, 12, 10, 12, 0, tzinfo=timezone.utc)
        draw = next_draw_date(after)
        self.assertEqual((draw.year, draw.month, draw.day), (2027, 1, 9))

    def test_score_cutoff_is_a_day_before_the_draw(self) -> None:
        # 9 Feb 2026 20:00 EST is 10 Feb 01:00 UTC
        self.assertTrue(can_submit_scores(datetime(2026, 2, 8, 23, 0, tzinfo=timezone.utc)))
        self.assertFalse(can_submit_scores(datetime(2026, 2, 9, 2, 0, tzinfo=timezone.utc)))

    def test_future_cycle(self) -> None:
        now = datetime(2026, 2, 15, tzinfo=timezone.utc)
        self.assertFalse(is_future_cycle("January 2026", now))
        self.assertFalse(is_future_cycle("February 2026", now))
        self.assertTrue(is_future_cycle("March 2026", now))

    def test_format_draw_date(self) -> None:
        draw = next_draw_date(datetime(2026, 2, 1, tzinfo=timezone.utc))
        self.assertEqual(format_draw_date(draw), "9th February 2026, 8:00 PM EST")


if __name__ == "__main__":
    unittest.main()
