from enum import Enum


class GamePhase(Enum):
    SETUP = "setup"
    PLACEMENT = "placement"
    DRAFT = "draft"
    ATTACK = "attack"
    FORTIFY = "fortify"


class PlacementStage(Enum):
    CLAIM = "claim"
    DISTRIBUTE = "distribute"
