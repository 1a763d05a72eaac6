import pytest

from swipe.leaderboard import build_leaderboard
from swipe.models import Challenge
from swipe.scoring import rank_score


def _c(challenge_id, y, n, s, retired=False):
    return Challenge(challenge_id=challenge_id, text=f"text {challenge_id}",
                     yes_count=y, no_count=n, skip_count=s, retired=retired)


def test_volume_beats_single_vote():
    rows = build_leaderboard([_c("lonely", 1, 0, 0), _c("popular", 180, 20, 0)])
    assert [r.challenge_id for r in rows] == ["popular", "lonely"]
    assert [r.rank for r in rows] == [1, 2]


def test_row_fields():
    row = build_leaderboard([_c("A", 3, 1, 1)])[0]
    assert row.total == 5
    assert row.approval_rate == pytest.approx(0.6)
    assert row.rank_score == pytest.approx(rank_score(3, 1, 1))
    assert row.to_dict()["approval_percent"] == 60.0


def test_ties_broken_by_challenge_id():
    rows = build_leaderboard([_c("b", 2, 0, 0), _c("c", 0, 0, 0), _c("a", 2, 0, 0)])
    assert [r.challenge_id for r in rows] == ["a", "b", "c"]


def test_retired_hidden_by_default():
    rows = build_leaderboard([_c("A", 1, 0, 0), _c("B", 0, 5, 0, retired=True)])
    assert [r.challenge_id for r in rows] == ["A"]


def test_retired_shown_when_requested():
    rows = build_leaderboard([_c("A", 1, 0, 0), _c("B", 0, 5, 0, retired=True)], include_retired=True)
    assert [r.challenge_id for r in rows] == ["A", "B"]
    assert rows[1].retired


def test_limit():
    rows = build_leaderboard([_c(str(i), i, 0, 0) for i in range(1, 6)], limit=2)
    assert [r.challenge_id for r in rows] == ["5", "4"]


def test_leaderboard_does_not_mutate_or_retire():
    bad = _c("A", 0, 9, 0)
    build_leaderboard([bad])
    assert not bad.retired
    assert bad.no_count == 9


def test_empty():
    assert build_leaderboard([]) == []
