from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class HistoryEntry:
    turn: int
    player_id: int
    action: str
    result: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        return {
            'turn': self.turn,
            'player_id': self.player_id,
            'action': self.action,
            'result': dict(self.result),
            'timestamp': self.timestamp
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'HistoryEntry':
        return cls(
            turn=data['turn'],
            player_id=data['player_id'],
            action=data['action'],
            result=dict(data.get('result', {})),
            timestamp=data.get('timestamp', datetime.now().isoformat())
        )


class GameHistory:
    """Append-only audit log of game actions."""

    def __init__(self, entries: Optional[List[HistoryEntry]] = None):
        self._entries: List[HistoryEntry] = list(entries or [])

    def append(self, turn: int, player_id: int, action: str, **result: Any) -> HistoryEntry:
        entry = HistoryEntry(turn=turn, player_id=player_id, action=action, result=result)
        self._entries.append(entry)
        return entry

    @property
    def last(self) -> Optional[HistoryEntry]:
        """Most recent entry, used for the last-action highlight."""
        return self._entries[-1] if self._entries else None

    def recent(self, count: int = 10) -> List[HistoryEntry]:
        return self._entries[-count:]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def to_list(self) -> List[dict]:
        return [entry.to_dict() for entry in self._entries]
