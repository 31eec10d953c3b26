import unittest

from app.services.feed_engine.diversifier import apply_diversity_penalties
from app.services.feed_engine.persister import persist_scores, select_top_k

from feed_fakes import NOW, InMemoryFeedStore, make_scored


class TestDiversityPenalties(unittest.TestCase):
    def test_third_post_by_same_author_is_penalised(self):
        out = apply_diversity_penalties([
            make_scored("p1", "A", 10.0),
            make_scored("p2", "A", 9.0),
            make_scored("p3", "A", 8.0),
        ])
        self.assertEqual([s.score for s in out], [10.0, 9.0, 6.0])
        self.assertEqual([s.reason.diversity for s in out], [0.0, 0.0, -2.0])

    def test_fourth_post_on_same_show_is_penalised(self):
        out = apply_diversity_penalties([
            make_scored(f"p{i}", f"author{i}", 10.0 - i, show_id="s1") for i in range(4)
        ])
        self.assertEqual([s.score for s in out], [10.0, 9.0, 8.0, 5.0])

    def test_author_and_show_penalties_stack(self):
        out = apply_diversity_penalties([
            make_scored(f"p{i}", "A", 10.0 - i, show_id="s1") for i in range(4)
        ])
        self.assertEqual([s.reason.diversity for s in out], [0.0, 0.0, -2.0, -4.0])

    def test_null_show_is_not_counted(self):
        out = apply_diversity_penalties([
            make_scored(f"p{i}", f"author{i}", 10.0 - i) for i in range(5)
        ])
        self.assertTrue(all(s.reason.diversity == 0.0 for s in out))

    def test_sorted_by_score_and_not_resorted_after_penalties(self):
        out = apply_diversity_penalties([
            make_scored("b1", "B", 8.0),
            make_scored("a1", "A", 10.0),
            make_scored("a2", "A", 9.0),
            make_scored("a3", "A", 8.5),
        ])
        self.assertEqual([s.post_id for s in out], ["a1", "a2", "a3", "b1"])
        self.assertEqual(out[2].score, 6.5)

    def test_ties_keep_incoming_order(self):
        out = apply_diversity_penalties([make_scored(p, p, 5.0) for p in ("x", "y", "z")])
        self.assertEqual([s.post_id for s in out], ["x", "y", "z"])

    def test_input_is_not_mutated(self):
        items = [make_scored(f"p{i}", "A", 10.0 - i) for i in range(3)]
        apply_diversity_penalties(items)
        self.assertEqual(items[2].score, 8.0)


class TestTopKAndPersist(unittest.TestCase):
    def test_select_top_k_orders_and_truncates(self):
        items = [make_scored(f"p{i}", f"a{i}", float(i % 7)) for i in range(300)]
        top = select_top_k(items, 200)
        self.assertEqual(len(top), 200)
        scores = [s.score for s in top]
        self.assertEqual(scores, sorted(scores, reverse=True))

    def test_select_top_k_reorders_penalised_items(self):
        penalised = apply_diversity_penalties([
            make_scored("b1", "B", 8.0),
            make_scored("a1", "A", 10.0),
            make_scored("a2", "A", 9.0),
            make_scored("a3", "A", 8.5),
        ])
        self.assertEqual([s.post_id for s in select_top_k(penalised, 3)], ["a1", "a2", "b1"])

    def test_persist_empty_writes_nothing(self):
        store = InMemoryFeedStore()
        self.assertEqual(persist_scores(store, [], NOW), 0)
        self.assertEqual(store.upserts, [])

    def test_persist_issues_one_batch(self):
        store = InMemoryFeedStore()
        rows = [make_scored("p1", "A", 3.0), make_scored("p2", "B", 2.0)]
        self.assertEqual(persist_scores(store, rows, NOW), 2)
        self.assertEqual(len(store.upserts), 1)
        self.assertEqual(store.upserts[0][1], NOW)


if __name__ == "__main__":
    unittest.main()
