from dataclasses import dataclass, asdict
from enum import Enum


class PlacementMode(Enum):
    RANDOM = "random"
    SEQUENTIAL = "sequential"


class BattleSpeed(Enum):
    NORMAL = "normal"  # one dice round per attack
    INSTANT = "instant"  # resolve until conquest or attacker exhausted


class ResourceLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class GameSettings:
    placement_mode: PlacementMode = PlacementMode.RANDOM
    battle_speed: BattleSpeed = BattleSpeed.NORMAL
    resource_level: ResourceLevel = ResourceLevel.MEDIUM
    map_id: str = "world"

    def to_dict(self) -> dict:
        data = asdict(self)
        data['placement_mode'] = self.placement_mode.value
        data['battle_speed'] = self.battle_speed.value
        data['resource_level'] = self.resource_level.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'GameSettings':
        """Build settings from plain values. Raises ValueError on unknown values."""
        return cls(
            placement_mode=PlacementMode(data.get('placement_mode', PlacementMode.RANDOM.value)),
            battle_speed=BattleSpeed(data.get('battle_speed', BattleSpeed.NORMAL.value)),
            resource_level=ResourceLevel(data.get('resource_level', ResourceLevel.MEDIUM.value)),
            map_id=data.get('map_id', "world")
        )
