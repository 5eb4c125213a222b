import unittest
from types import SimpleNamespace

from backend.app.engine.reports import do_reports_match, reports_agree, winner_by_threshold


def report(winner=None, is_tie=False, status="pending", **scores):
    return SimpleNamespace(
        winner=winner,
        status=status,
        is_tie=is_tie,
        scores=[{"player_uuid": uuid, "score": score} for uuid, score in scores.items()],
    )


class TestReportAgreement(unittest.TestCase):
    def test_identical_reports_match(self):
        self.assertTrue(do_reports_match(report("a", a=3, b=1), report("a", b=1, a=3)))

    def test_different_winner(self):
        self.assertFalse(do_reports_match(report("a", a=3, b=1), report("b", a=3, b=1)))

    def test_different_scores(self):
        self.assertFalse(do_reports_match(report("a", a=3, b=1), report("a", a=3, b=2)))

    def test_missing_player_score(self):
        self.assertFalse(do_reports_match(report("a", a=3, b=1), report("a", a=3)))

    def test_tie_flag_must_agree(self):
        self.assertTrue(do_reports_match(report(is_tie=True, a=2, b=2), report(is_tie=True, a=2, b=2)))
        self.assertFalse(do_reports_match(report(is_tie=True, a=2, b=2), report("a", a=2, b=2)))

    def test_group_needs_exactly_two_reports(self):
        same = report("a", a=1, b=0)
        self.assertFalse(reports_agree([same]))
        self.assertTrue(reports_agree([same, report("a", a=1, b=0)]))
        self.assertFalse(reports_agree([same, same, same]))

    def test_only_pending_reports_count(self):
        disputed = report("b", status="disputed", a=0, b=1)
        self.assertTrue(reports_agree([disputed, report("a", a=1, b=0), report("a", a=1, b=0)]))
        self.assertFalse(reports_agree([report("a", status="accepted", a=1, b=0), report("a", a=1, b=0)]))


class TestAutoWinThreshold(unittest.TestCase):
    def test_single_player_at_threshold_wins(self):
        scores = [{"player_uuid": "a", "score": 11}, {"player_uuid": "b", "score": 7}]
        self.assertEqual(winner_by_threshold(scores, 11), "a")

    def test_no_threshold_or_no_leader(self):
        scores = [{"player_uuid": "a", "score": 11}, {"player_uuid": "b", "score": 11}]
        self.assertIsNone(winner_by_threshold(scores, None))
        self.assertIsNone(winner_by_threshold(scores, 11))
        self.assertIsNone(winner_by_threshold(scores, 12))


if __name__ == '__main__':
    unittest.main()
