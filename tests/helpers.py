from typing import Dict, Optional, Sequence

from conquest.game.game_state import GameState
from conquest.game.phases import GamePhase
from conquest.game.settings import GameSettings, PlacementMode


def make_game(names: Sequence[str] = ("Ann", "Bob"), humans: Optional[int] = None,
              mode: str = "random", seed: str = "fixed-seed", map_id: str = "world") -> GameState:
    settings = GameSettings(placement_mode=PlacementMode(mode), map_id=map_id)
    game = GameState("test-game", settings=settings, seed=seed)
    human_count = len(names) if humans is None else humans
    assert game.init_game(list(names), human_count)
    return game


def set_board(game: GameState, owners: Dict[str, int], default_owner: int = 0,
              armies: Optional[Dict[str, int]] = None, default_armies: int = 1) -> None:
    """Assign every territory, overriding the listed ones."""
    armies = armies or {}
    for territory in game.territory_manager.get_all_territories():
        territory.owner = owners.get(territory.territory_id, default_owner)
        territory.army_count = armies.get(territory.territory_id, default_armies)


def enter_attack(game: GameState, turn: int = 2) -> None:
    """Put the current player straight into the attack phase."""
    game.turn = turn
    game.phase = GamePhase.ATTACK
    game.draft_armies = 0
    game.draft_has_placed = True
    game.conquest_made_this_turn = False
