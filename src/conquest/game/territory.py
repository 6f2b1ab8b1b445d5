import json
from pathlib import Path
from typing import Dict, List, Optional
from dataclasses import dataclass

NEUTRAL = -1  # owner id for unclaimed territories

MAPS_DIR = Path(__file__).resolve().parent.parent / 'data' / 'maps'


@dataclass(frozen=True)
class Continent:
    id: str
    name: str
    bonus: int
    color: str = "#475569"


@dataclass(frozen=True)
class Territory:
    id: str
    name: str
    continent: str
    neighbors: tuple = ()

    def is_adjacent_to(self, territory_id: str) -> bool:
        """Check if this territory lists another territory as a neighbor."""
        return territory_id in self.neighbors


@dataclass(frozen=True)
class MapDefinition:
    id: str
    name: str
    continents: tuple
    territories: tuple

    def territory_ids(self) -> List[str]:
        """Territory ids in map order."""
        return [t.id for t in self.territories]


@dataclass
class TerritoryState:
    territory_id: str
    owner: int = NEUTRAL
    army_count: int = 0

    def is_owned_by(self, player_id: int) -> bool:
        """Check if territory is owned by the specified player."""
        return self.owner == player_id

    def is_neutral(self) -> bool:
        return self.owner == NEUTRAL

    def can_attack_from(self) -> bool:
        """Check if this territory can launch attacks (has more than 1 army)."""
        return self.army_count > 1

    def add_armies(self, count: int) -> None:
        """Add armies to this territory."""
        self.army_count += count

    def remove_armies(self, count: int) -> int:
        """Remove armies from this territory, return actual amount removed."""
        actual_removed = min(count, self.army_count)
        self.army_count -= actual_removed
        return actual_removed

    def set_owner(self, player_id: int) -> None:
        """Set the owner of this territory."""
        self.owner = player_id

    def to_dict(self) -> dict:
        """Convert territory state to dictionary for serialization."""
        return {
            'territory_id': self.territory_id,
            'owner': self.owner,
            'army_count': self.army_count
        }


def _parse_map(data: dict) -> MapDefinition:
    continents = tuple(
        Continent(
            id=c['id'],
            name=c['name'],
            bonus=int(c['bonus']),
            color=c.get('color', "#475569")
        )
        for c in data['continents']
    )
    territories = tuple(
        Territory(
            id=t['id'],
            name=t['name'],
            continent=t['continent'],
            neighbors=tuple(t['neighbors'])
        )
        for t in data['territories']
    )
    return MapDefinition(id=data['id'], name=data['name'], continents=continents, territories=territories)


_map_cache: Dict[str, MapDefinition] = {}


def list_maps() -> List[str]:
    """List the ids of all bundled maps."""
    return sorted(p.stem for p in MAPS_DIR.glob('*.json'))


def get_map_by_id(map_id: str) -> Optional[MapDefinition]:
    """Load a map definition by id. Returns None if no such map exists."""
    if map_id in _map_cache:
        return _map_cache[map_id]

    map_file = MAPS_DIR / f"{map_id}.json"
    if not map_file.is_file():
        return None

    with open(map_file, 'r', encoding='utf-8') as f:
        definition = _parse_map(json.load(f))

    _map_cache[map_id] = definition
    return definition


class TerritoryManager:
    """Owns the dynamic state of every territory on one map."""

    def __init__(self, map_definition: MapDefinition):
        self.map_definition = map_definition
        self.definitions: Dict[str, Territory] = {t.id: t for t in map_definition.territories}
        self.continents: Dict[str, Continent] = {c.id: c for c in map_definition.continents}
        self.territories: Dict[str, TerritoryState] = {}
        self.reset()

    def reset(self) -> None:
        """Make every territory neutral with no armies."""
        self.territories = {
            tid: TerritoryState(territory_id=tid) for tid in self.definitions
        }

    def get_territory(self, territory_id: str) -> Optional[TerritoryState]:
        """Get a territory's dynamic state by id."""
        return self.territories.get(territory_id)

    def get_definition(self, territory_id: str) -> Optional[Territory]:
        return self.definitions.get(territory_id)

    def get_all_territories(self) -> List[TerritoryState]:
        """Get all territories."""
        return list(self.territories.values())

    def get_territories_by_owner(self, player_id: int) -> List[TerritoryState]:
        """Get all territories owned by a player."""
        return [t for t in self.territories.values() if t.owner == player_id]

    def get_neutral_territories(self) -> List[TerritoryState]:
        return self.get_territories_by_owner(NEUTRAL)

    def get_neighbors(self, territory_id: str) -> List[str]:
        """Neighbor ids of a territory, including one-sided declarations."""
        definition = self.definitions.get(territory_id)
        if not definition:
            return []
        neighbors = list(definition.neighbors)
        for other in self.definitions.values():
            if territory_id in other.neighbors and other.id not in neighbors:
                neighbors.append(other.id)
        return [n for n in neighbors if n in self.definitions]

    def are_adjacent(self, territory1: str, territory2: str) -> bool:
        """Check if two territories are adjacent (in either direction)."""
        t1 = self.definitions.get(territory1)
        t2 = self.definitions.get(territory2)
        if not t1 or not t2 or territory1 == territory2:
            return False
        return t1.is_adjacent_to(territory2) or t2.is_adjacent_to(territory1)

    def get_continent_territories(self, continent_id: str) -> List[str]:
        """Get all territory ids in a continent."""
        return [t.id for t in self.definitions.values() if t.continent == continent_id]

    def player_controls_continent(self, player_id: int, continent_id: str) -> bool:
        """Check if a player controls all territories in a continent."""
        continent_territories = self.get_continent_territories(continent_id)
        return bool(continent_territories) and all(
            self.territories[tid].owner == player_id
            for tid in continent_territories
        )

    def get_player_continent_bonuses(self, player_id: int) -> Dict[str, int]:
        """Get all continent bonuses for a player."""
        bonuses = {}
        for continent_id, continent in self.continents.items():
            if self.player_controls_continent(player_id, continent_id):
                bonuses[continent_id] = continent.bonus
        return bonuses

    def owner_ids(self) -> set:
        """Distinct owner ids across the map, neutral included."""
        return {t.owner for t in self.territories.values()}

    def to_dict(self) -> dict:
        """Convert all territories to dictionary for serialization."""
        return {
            tid: territory.to_dict()
            for tid, territory in self.territories.items()
        }
