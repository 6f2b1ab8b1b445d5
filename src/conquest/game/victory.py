from typing import List, Optional

from .player import Player
from .territory import NEUTRAL, TerritoryManager


def update_alive_flags(territory_manager: TerritoryManager, players: List[Player]) -> None:
    """A player is alive while it owns at least one territory."""
    owners = territory_manager.owner_ids()
    for player in players:
        player.alive = player.player_id in owners


def check_win_condition(territory_manager: TerritoryManager, players: List[Player]) -> Optional[int]:
    """
    Recompute liveness and detect the terminal state.

    Returns the winner's player id when a single player owns every
    territory, otherwise None.
    """
    owners = territory_manager.owner_ids()
    if len(owners) == 1:
        sole_owner = next(iter(owners))
        if sole_owner != NEUTRAL:
            for player in players:
                player.alive = player.player_id == sole_owner
            return sole_owner

    update_alive_flags(territory_manager, players)
    return None
