from typing import List, Dict, Tuple, Optional
from dataclasses import dataclass
from enum import Enum

from .rng import GameRng


class CardType(Enum):
    INFANTRY = "infantry"
    CAVALRY = "cavalry"
    ARTILLERY = "artillery"
    WILD = "wild"


NAMED_TYPES = (CardType.INFANTRY, CardType.CAVALRY, CardType.ARTILLERY)

# Armies awarded per set, in priority order
MIXED_SET_AWARD = 10
THREE_OF_A_KIND_AWARDS = [
    (CardType.ARTILLERY, 8),
    (CardType.CAVALRY, 6),
    (CardType.INFANTRY, 4),
]

FORCED_REDEMPTION_HAND_SIZE = 5
MAX_FORCED_REDEMPTIONS = 5


@dataclass
class Card:
    card_type: CardType
    territory_id: Optional[str] = None

    @property
    def is_wild(self) -> bool:
        return self.card_type == CardType.WILD

    def to_dict(self) -> dict:
        """Convert card to dictionary."""
        return {
            'card_type': self.card_type.value,
            'territory_id': self.territory_id
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Card':
        return cls(card_type=CardType(data['card_type']), territory_id=data.get('territory_id'))


class CardManager:
    """Manages the shared card deck and set redemption."""

    def __init__(self, territory_ids: List[str], rng: GameRng):
        self.deck = self._create_deck(territory_ids)
        rng.shuffle(self.deck)

    def _create_deck(self, territory_ids: List[str]) -> List[Card]:
        """Create a deck with one card per territory plus two wild cards."""
        # Assign card types cyclically to territories
        deck = [
            Card(card_type=NAMED_TYPES[i % 3], territory_id=territory_id)
            for i, territory_id in enumerate(territory_ids)
        ]
        deck.extend([Card(CardType.WILD), Card(CardType.WILD)])
        return deck

    def draw_card(self) -> Card:
        """Draw a card from the deck. An exhausted deck yields a wild card."""
        if not self.deck:
            return Card(CardType.WILD)
        return self.deck.pop()

    @staticmethod
    def get_card_summary(cards: List[Card]) -> Dict[CardType, int]:
        """Get a summary count of card types."""
        summary = {card_type: 0 for card_type in CardType}
        for card in cards:
            summary[card.card_type] += 1
        return summary

    @classmethod
    def find_best_set(cls, cards: List[Card]) -> Optional[Tuple[int, List[int]]]:
        """
        Pick the highest-priority set available in a hand.
        Returns (award, card_indices) or None if no set can be formed.
        Named cards are consumed first; wilds only cover shortfalls.
        """
        if len(cards) < 3:
            return None

        indices_by_type: Dict[CardType, List[int]] = {card_type: [] for card_type in CardType}
        for idx, card in enumerate(cards):
            indices_by_type[card.card_type].append(idx)
        wilds = indices_by_type[CardType.WILD]

        # One of each named type
        present = [indices_by_type[t][0] for t in NAMED_TYPES if indices_by_type[t]]
        missing = 3 - len(present)
        if missing <= len(wilds):
            return MIXED_SET_AWARD, present + wilds[:missing]

        # Three of a kind
        for card_type, award in THREE_OF_A_KIND_AWARDS:
            named = indices_by_type[card_type][:3]
            shortfall = 3 - len(named)
            if shortfall <= len(wilds):
                return award, named + wilds[:shortfall]

        return None

    @staticmethod
    def format_cards(cards: List[Card]) -> str:
        """Format a list of cards for display."""
        if not cards:
            return "No cards"

        summary = CardManager.get_card_summary(cards)
        parts = []
        for card_type, count in summary.items():
            if count > 0:
                parts.append(f"{count} {card_type.value}")

        return ", ".join(parts)

    def to_list(self) -> List[dict]:
        return [card.to_dict() for card in self.deck]

    def load_list(self, cards: List[dict]) -> None:
        self.deck = [Card.from_dict(c) for c in cards]
