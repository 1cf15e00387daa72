"""
Ranking service: standings and final places

Pure calculation, no state changes.
"""
from typing import List, Sequence

from core.game_state import Player, RankedPlayer


def round_standings(players: Sequence[Player]) -> List[RankedPlayer]:
    """
    Players sorted by score, highest first

    Ties keep roster order (sorted() is stable). Places use competition
    ranking, see rank_players().
    """
    return rank_players(players)


def rank_players(players: Sequence[Player]) -> List[RankedPlayer]:
    """
    Competition ranking: place = 1 + number of players with a strictly
    higher score

    Example:
        scores [30, 30, 20] -> places [1, 1, 3]
    """
    order = sorted(range(len(players)), key=lambda i: -players[i].score)

    ranked: List[RankedPlayer] = []
    place = 1
    for position, index in enumerate(order):
        if position > 0 and players[index].score != players[order[position - 1]].score:
            place = position + 1
        player = players[index]
        ranked.append(RankedPlayer(place=place, index=index, name=player.name, score=player.score))

    return ranked


def winners(players: Sequence[Player]) -> List[Player]:
    """Every player on the top score; more than one means a tie"""
    if not players:
        return []
    top = max(p.score for p in players)
    return [p for p in players if p.score == top]
