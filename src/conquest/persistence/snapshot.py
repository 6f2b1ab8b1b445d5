from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class CardSnapshot(BaseModel):
    card_type: Literal["infantry", "cavalry", "artillery", "wild"]
    territory_id: Optional[str] = None


class PlayerSnapshot(BaseModel):
    player_id: int = Field(ge=0)
    name: str
    color: str
    is_human: bool = False
    alive: bool = True
    cards: List[CardSnapshot] = Field(default_factory=list)


class TerritorySnapshot(BaseModel):
    territory_id: str
    owner: int = Field(ge=-1, description="Player id, or -1 for neutral")
    army_count: int = Field(ge=0)


class BattleResultSnapshot(BaseModel):
    attacker_losses: int = Field(ge=0)
    defender_losses: int = Field(ge=0)
    attacker_dice: List[int] = Field(default_factory=list)
    defender_dice: List[int] = Field(default_factory=list)
    conquered: bool = False
    attacker_remaining: int = Field(0, ge=0)
    defender_remaining: int = Field(0, ge=0)


class SettingsSnapshot(BaseModel):
    placement_mode: Literal["random", "sequential"] = "random"
    battle_speed: Literal["normal", "instant"] = "normal"
    resource_level: Literal["low", "medium", "high"] = "medium"
    map_id: str = "world"


class HistorySnapshot(BaseModel):
    turn: int
    player_id: int
    action: str
    result: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str


class GameSnapshot(BaseModel):
    """Flat record exchanged with the persistence gateway."""
    game_id: Optional[str] = None
    selected_map: str
    players: List[PlayerSnapshot]
    territories: Dict[str, TerritorySnapshot]
    phase: Literal["setup", "placement", "draft", "attack", "fortify"]
    current_player_index: int = Field(ge=0)
    turn: int = Field(ge=0)
    draft_armies: int = Field(ge=0)
    attack_from: Optional[str] = None
    attack_to: Optional[str] = None
    last_battle_result: Optional[BattleResultSnapshot] = None
    fortify_from: Optional[str] = None
    fortify_to: Optional[str] = None
    cards_deck: List[CardSnapshot] = Field(default_factory=list)
    conquest_made_this_turn: bool = False
    draft_has_placed: bool = False
    settings: SettingsSnapshot
    history: List[HistorySnapshot] = Field(default_factory=list)
    placement_reserves: Dict[int, int] = Field(default_factory=dict)
    placement_stage: Optional[Literal["claim", "distribute"]] = None
    winner: Optional[int] = None
    rng_state: Optional[List[Any]] = None
    generation: int = Field(0, ge=0)
