from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from drink_tally.leaderboard import project, rank_of, ranked
from drink_tally.quests import new_user_record

NOW = datetime(2024, 5, 1, 22, 0)


def _rec(uid: str, drinks: int, name: str = ""):
    return replace(new_user_record(uid, "2024-05-01", NOW), drinks=drinks, display_name=name or uid)


def test_sorted_by_drinks_descending() -> None:
    records = [_rec("a", 3), _rec("b", 10), _rec("c", 0), _rec("d", 7)]
    out = project(records)
    drinks = [r.drinks for r in out]
    assert drinks == sorted(drinks, reverse=True)
    assert [r.user_id for r in out] == ["b", "d", "a", "c"]


def test_ties_break_by_user_id() -> None:
    records = [_rec("zed", 4), _rec("amy", 4), _rec("kim", 4), _rec("top", 9)]
    out = project(records)
    assert [r.user_id for r in out] == ["top", "amy", "kim", "zed"]
    assert [r.user_id for r in project(reversed(records))] == ["top", "amy", "kim", "zed"]


def test_no_filtering_of_empty_entrants() -> None:
    records = [_rec("a", 0, name=" "), _rec("b", 0)]
    assert len(project(records)) == 2


def test_ranked_and_rank_of() -> None:
    records = [_rec("a", 1), _rec("b", 5)]
    entries = ranked(records)
    assert [(e.rank, e.user_id, e.drinks) for e in entries] == [(1, "b", 5), (2, "a", 1)]
    assert rank_of(records, "a") == 2
    assert rank_of(records, "nobody") is None


def test_empty_input() -> None:
    assert project([]) == []
