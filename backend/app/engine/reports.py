from typing import Dict, Iterable, Optional, Sequence

from backend.app.models.enums import ReportStatus


def _score_map(scores) -> Dict[str, int]:
    entries = {}
    for entry in scores or []:
        if isinstance(entry, dict):
            entries[entry["player_uuid"]] = entry["score"]
        else:
            entries[entry.player_uuid] = entry.score
    return entries


def do_reports_match(report_1, report_2) -> bool:
    """
    Two reports agree iff they declare the same tie status, the same winner
    when it is not a tie, and identical scores for every player on both sides.
    Informative only: agreement never accepts a report by itself.
    """
    if bool(report_1.is_tie) != bool(report_2.is_tie):
        return False
    if not report_1.is_tie and report_1.winner != report_2.winner:
        return False
    return _score_map(report_1.scores) == _score_map(report_2.scores)


def reports_agree(reports: Sequence) -> bool:
    """Agreement for a match's report group, over its pending reports; only a pair can agree."""
    pending = [r for r in reports if r.status == ReportStatus.PENDING]
    if len(pending) != 2:
        return False
    return do_reports_match(pending[0], pending[1])


def winner_by_threshold(scores: Iterable, threshold: Optional[int]) -> Optional[str]:
    """The single player whose score reaches the auto-win threshold, if any."""
    if threshold is None:
        return None
    reached = [uuid for uuid, score in _score_map(scores).items() if score is not None and score >= threshold]
    if len(reached) == 1:
        return reached[0]
    return None
