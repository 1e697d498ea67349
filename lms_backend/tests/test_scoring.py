"""
Tests for effective score resolution.
"""

import unittest

from lms_backend.assessments.models import Attempt, AttemptStatus, ScoreMode
from lms_backend.assessments.scoring import best_score, latest_score, resolve_effective_score


def graded(number: int, percent: int, passing_score: int = 80) -> Attempt:
    return Attempt(
        attempt_id=f"att-{number}",
        course_id="course-1",
        config_id="cfg-1",
        learner_id="learner-1",
        attempt_number=number,
        status=AttemptStatus.GRADED,
        percent_score=percent,
        passed=percent >= passing_score,
    )


def in_progress(number: int) -> Attempt:
    return Attempt(
        attempt_id=f"att-{number}",
        course_id="course-1",
        config_id="cfg-1",
        learner_id="learner-1",
        attempt_number=number,
    )


class TestResolveEffectiveScore(unittest.TestCase):

    def setUp(self):
        self.attempts = [graded(1, 40), graded(2, 90), graded(3, 70)]

    def test_best_picks_highest(self):
        effective = resolve_effective_score(self.attempts, ScoreMode.BEST)
        self.assertEqual(effective.score, 90)
        self.assertTrue(effective.passed)
        self.assertEqual(effective.attempt_id, "att-2")

    def test_latest_picks_highest_attempt_number(self):
        effective = resolve_effective_score(self.attempts, ScoreMode.LATEST)
        self.assertEqual(effective.score, 70)
        self.assertFalse(effective.passed)
        self.assertEqual(effective.attempt_number, 3)

    def test_latest_ignores_list_order(self):
        shuffled = [self.attempts[2], self.attempts[0], self.attempts[1]]
        self.assertEqual(resolve_effective_score(shuffled, ScoreMode.LATEST).attempt_number, 3)

    def test_best_tie_goes_to_earliest_attempt(self):
        attempts = [graded(3, 85), graded(1, 85), graded(2, 60)]
        effective = resolve_effective_score(attempts, ScoreMode.BEST)
        self.assertEqual(effective.attempt_number, 1)

        effective = resolve_effective_score(list(reversed(attempts)), ScoreMode.BEST)
        self.assertEqual(effective.attempt_number, 1)

    def test_no_graded_attempts(self):
        self.assertIsNone(resolve_effective_score([], ScoreMode.BEST))
        self.assertIsNone(resolve_effective_score([in_progress(1)], ScoreMode.LATEST))

    def test_in_progress_attempts_are_ignored(self):
        attempts = [graded(1, 50), in_progress(2)]
        self.assertEqual(resolve_effective_score(attempts, ScoreMode.LATEST).attempt_number, 1)

    def test_accepts_score_mode_value(self):
        self.assertEqual(resolve_effective_score(self.attempts, "latest").score, 70)


class TestScoreHelpers(unittest.TestCase):

    def test_best_and_latest(self):
        attempts = [graded(1, 40), graded(2, 90), graded(3, 70), in_progress(4)]
        self.assertEqual(best_score(attempts), 90)
        self.assertEqual(latest_score(attempts), 70)

    def test_none_without_graded_attempts(self):
        self.assertIsNone(best_score([in_progress(1)]))
        self.assertIsNone(latest_score([]))


if __name__ == "__main__":
    unittest.main()
