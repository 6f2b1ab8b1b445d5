from .game_state import GameState, PLACEMENT_RESERVE
from .phases import GamePhase, PlacementStage
from .settings import BattleSpeed, GameSettings, PlacementMode, ResourceLevel

__all__ = [
    "GameState",
    "GamePhase",
    "PlacementStage",
    "GameSettings",
    "PlacementMode",
    "BattleSpeed",
    "ResourceLevel",
    "PLACEMENT_RESERVE",
]
