from typing import List
from dataclasses import dataclass, field

from .cards import Card

# Cycled when the caller does not supply custom colors
DEFAULT_COLORS = [
    "#EF4444", "#3B82F6", "#10B981", "#F59E0B", "#8B5CF6", "#EC4899"
]


@dataclass
class Player:
    player_id: int
    name: str
    color: str
    is_human: bool = False
    alive: bool = True
    cards: List[Card] = field(default_factory=list)

    def add_card(self, card: Card) -> None:
        """Add a card to this player's hand."""
        self.cards.append(card)

    def remove_cards(self, card_indices: List[int]) -> List[Card]:
        """Remove cards by index and return the removed cards."""
        removed_cards = []
        # Sort indices in reverse order to avoid index shifting issues
        for idx in sorted(set(card_indices), reverse=True):
            if 0 <= idx < len(self.cards):
                removed_cards.append(self.cards.pop(idx))
        return removed_cards[::-1]

    def take_all_cards(self) -> List[Card]:
        """Empty this player's hand, returning what it held."""
        cards = self.cards
        self.cards = []
        return cards

    def to_dict(self) -> dict:
        """Convert player to dictionary for serialization."""
        return {
            'player_id': self.player_id,
            'name': self.name,
            'color': self.color,
            'is_human': self.is_human,
            'alive': self.alive,
            'cards': [card.to_dict() for card in self.cards]
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Player':
        return cls(
            player_id=data['player_id'],
            name=data['name'],
            color=data['color'],
            is_human=data.get('is_human', False),
            alive=data.get('alive', True),
            cards=[Card.from_dict(c) for c in data.get('cards', [])]
        )
