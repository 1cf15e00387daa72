"""Competition ranking and winners."""

from core.game_state import Player
from services.ranking_service import rank_players, round_standings, winners


def test_tied_scores_share_a_place() -> None:
    players = [Player("Ann", 30), Player("Ben", 30), Player("Cal", 20)]
    ranked = rank_players(players)
    assert [r.place for r in ranked] == [1, 1, 3]
    assert [r.name for r in ranked] == ["Ann", "Ben", "Cal"]


def test_standings_sort_by_score_and_keep_roster_order_on_ties() -> None:
    players = [Player("Ann", 5), Player("Ben", 40), Player("Cal", 5), Player("Dee", 12)]
    standings = round_standings(players)
    assert [r.name for r in standings] == ["Ben", "Dee", "Ann", "Cal"]
    assert [r.place for r in standings] == [1, 2, 3, 3]
    assert [r.index for r in standings] == [1, 3, 0, 2]


def test_winners() -> None:
    assert winners([]) == []
    assert [p.name for p in winners([Player("Ann", 3), Player("Ben", 9)])] == ["Ben"]
    assert len(winners([Player("Ann", 9), Player("Ben", 9)])) == 2
