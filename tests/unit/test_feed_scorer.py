import math
import unittest
from datetime import timedelta

from app.schemas import UserContext
from app.services.feed_engine.candidate_pool import CandidatePool
from app.services.feed_engine.scorer import (
    DEFAULT_WEIGHTS,
    age_decay,
    engagement_base,
    score_candidates,
    score_post,
)

from feed_fakes import NOW, make_metrics, make_post


def pool_of(*pairs):
    posts = [p for p, _ in pairs]
    return CandidatePool(posts=posts, metrics={p.key: m for p, m in pairs})


class TestFeedScorer(unittest.TestCase):
    def test_followed_author_outranks_stranger_with_same_engagement(self):
        ctx = UserContext(user_id="U", following_ids=frozenset({"A"}))
        pool = pool_of(
            (make_post("post1", "A", hours=10), make_metrics("post1", likes=10)),
            (make_post("post2", "B", hours=10), make_metrics("post2", likes=10)),
        )
        scored = score_candidates(ctx, pool, NOW)
        by_id = {s.post_id: s for s in scored}

        decayed = 30 * math.exp(-10 / 36)
        self.assertAlmostEqual(by_id["post1"].score, decayed + 8, places=6)
        self.assertAlmostEqual(by_id["post2"].score, decayed + 2, places=6)
        self.assertAlmostEqual(by_id["post1"].score, 30.9, delta=0.25)
        self.assertAlmostEqual(by_id["post2"].score, 24.9, delta=0.25)
        self.assertGreater(by_id["post1"].score, by_id["post2"].score)

        reason = by_id["post1"].reason
        self.assertTrue(reason.followed)
        self.assertEqual(reason.base, 30.0)
        self.assertEqual(reason.decay, round(math.exp(-10 / 36), 2))
        self.assertEqual((reason.social, reason.similar, reason.explore), (8.0, 0.0, 0.0))
        self.assertEqual(by_id["post2"].reason.explore, 2.0)

    def test_engagement_base_weights(self):
        m = make_metrics("p", likes=1, comments=1, reshares=1, views=4, dislikes=1)
        self.assertEqual(engagement_base(m), 3 + 4 + 5 + 1 - 6)

    def test_negative_base_is_allowed(self):
        post = make_post("p", "B", hours=0)
        scored = score_post(post, make_metrics("p", dislikes=5), UserContext(user_id="U"), NOW)
        self.assertEqual(scored.score, -30 + 2)

    def test_following_adds_exactly_social_bonus_minus_explore(self):
        post = make_post("p", "A", hours=5, show_id="s1")
        metrics = make_metrics("p", likes=4, views=12)
        stranger = score_post(post, metrics, UserContext(user_id="U"), NOW)
        friend = score_post(post, metrics, UserContext(user_id="U", following_ids=frozenset({"A"})), NOW)
        self.assertAlmostEqual(friend.score - stranger.score, 8.0 - 2.0, places=9)

    def test_preferred_show_adds_six(self):
        post = make_post("p", "A", hours=5, show_id="s1")
        metrics = make_metrics("p", likes=4)
        plain = score_post(post, metrics, UserContext(user_id="U"), NOW)
        fan = score_post(post, metrics, UserContext(user_id="U", preferred_show_ids=frozenset({"s1"})), NOW)
        self.assertAlmostEqual(fan.score - plain.score, 6.0, places=9)
        self.assertTrue(fan.reason.similar_show)

    def test_null_show_never_matches(self):
        post = make_post("p", "A", show_id=None)
        ctx = UserContext(user_id="U", preferred_show_ids=frozenset({"s1"}))
        scored = score_post(post, make_metrics("p"), ctx, NOW)
        self.assertFalse(scored.reason.similar_show)
        self.assertEqual(scored.reason.similar, 0.0)

    def test_decay_is_monotonic_in_age(self):
        ages = [0, 1, 6, 36, 72, 500]
        decays = [age_decay(NOW - timedelta(hours=h), NOW) for h in ages]
        self.assertEqual(decays[0], 1.0)
        for newer, older in zip(decays, decays[1:]):
            self.assertGreater(newer, older)
        self.assertAlmostEqual(decays[3], math.exp(-1), places=9)

    def test_future_post_counts_as_age_zero(self):
        self.assertEqual(age_decay(NOW + timedelta(hours=3), NOW), 1.0)

    def test_genres_do_not_affect_score(self):
        post = make_post("p", "A", show_id="s1")
        metrics = make_metrics("p", likes=2)
        a = score_post(post, metrics, UserContext(user_id="U"), NOW)
        b = score_post(post, metrics, UserContext(user_id="U", preferred_genres=frozenset({"drama"})), NOW)
        self.assertEqual(a.score, b.score)

    def test_deterministic(self):
        ctx = UserContext(user_id="U", following_ids=frozenset({"A"}), preferred_show_ids=frozenset({"s2"}))
        pool = pool_of(
            (make_post("p1", "A", hours=3, show_id="s1"), make_metrics("p1", likes=3, views=40)),
            (make_post("p2", "B", hours=30, show_id="s2"), make_metrics("p2", comments=9)),
        )
        self.assertEqual(score_candidates(ctx, pool, NOW), score_candidates(ctx, pool, NOW))

    def test_empty_pool(self):
        self.assertEqual(score_candidates(UserContext(user_id="U"), CandidatePool(), NOW), [])

    def test_default_weights(self):
        self.assertEqual(DEFAULT_WEIGHTS.decay_hours, 36.0)
        self.assertEqual(DEFAULT_WEIGHTS.social_bonus, 8.0)


if __name__ == "__main__":
    unittest.main()
