import unittest
from datetime import datetime, timedelta, timezone

from app.services.explain import explain_feed_score
from app.utils.timezone import ensure_utc, hours_between


class TestExplainFeedScore(unittest.TestCase):
    def test_followed_with_show(self):
        text = explain_feed_score({
            "followed": True, "similar_show": True, "base": 30, "decay": 0.76,
            "social": 8, "similar": 6, "explore": 0, "diversity": 0,
        })
        self.assertIn("someone you follow (+8)", text)
        self.assertIn("show you like (+6)", text)
        self.assertIn("freshness 0.76", text)
        self.assertNotIn("penalty", text.lower())

    def test_exploration_and_penalty(self):
        text = explain_feed_score({
            "followed": False, "similar_show": False, "base": 4, "decay": 1.0,
            "social": 0, "similar": 0, "explore": 2, "diversity": -2,
        })
        self.assertIn("exploration boost (+2)", text)
        self.assertIn("Repetition penalty -2", text)

    def test_empty_reason(self):
        self.assertEqual(explain_feed_score({}), "Selected from recent posts.")


class TestTimezoneHelpers(unittest.TestCase):
    def test_naive_is_treated_as_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        self.assertEqual(ensure_utc(naive), datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))

    def test_aware_is_converted(self):
        pacific = datetime(2024, 1, 1, 4, 0, tzinfo=timezone(timedelta(hours=-8)))
        self.assertEqual(ensure_utc(pacific).hour, 12)
        self.assertEqual(ensure_utc(pacific).isoformat(), "2024-01-01T12:00:00+00:00")
        self.assertIsNone(ensure_utc(None))

    def test_hours_between_clamps_future(self):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.assertEqual(hours_between(now, now - timedelta(hours=10)), 10.0)
        self.assertEqual(hours_between(now, now + timedelta(hours=1)), 0.0)
        self.assertEqual(hours_between(now, datetime(2024, 1, 1, 11, 30)), 0.5)


if __name__ == "__main__":
    unittest.main()
