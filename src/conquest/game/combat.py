from typing import List, Tuple, Optional
from dataclasses import dataclass, field

from .rng import GameRng

MAX_ATTACKER_DICE = 3
MAX_DEFENDER_DICE = 2


@dataclass
class BattleResult:
    attacker_losses: int
    defender_losses: int
    attacker_dice: List[int] = field(default_factory=list)
    defender_dice: List[int] = field(default_factory=list)
    conquered: bool = False
    attacker_remaining: int = 0
    defender_remaining: int = 0

    def to_dict(self) -> dict:
        """Convert battle result to dictionary."""
        return {
            'attacker_losses': self.attacker_losses,
            'defender_losses': self.defender_losses,
            'attacker_dice': list(self.attacker_dice),
            'defender_dice': list(self.defender_dice),
            'conquered': self.conquered,
            'attacker_remaining': self.attacker_remaining,
            'defender_remaining': self.defender_remaining
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BattleResult':
        return cls(
            attacker_losses=data['attacker_losses'],
            defender_losses=data['defender_losses'],
            attacker_dice=list(data.get('attacker_dice', [])),
            defender_dice=list(data.get('defender_dice', [])),
            conquered=data.get('conquered', False),
            attacker_remaining=data.get('attacker_remaining', 0),
            defender_remaining=data.get('defender_remaining', 0)
        )


class CombatEngine:
    """Handles dice rolling and combat resolution."""

    @staticmethod
    def roll_dice(count: int, rng: GameRng) -> List[int]:
        """Roll the specified number of dice and return sorted results (highest first)."""
        dice = [rng.roll_die() for _ in range(count)]
        return sorted(dice, reverse=True)

    @staticmethod
    def get_attacker_dice_count(army_count: int, requested: int) -> int:
        """Clamp the requested attacker dice to [1, 3] and to armies - 1."""
        dice = max(1, min(MAX_ATTACKER_DICE, requested))
        return max(0, min(dice, army_count - 1))

    @staticmethod
    def get_defender_dice_count(army_count: int, requested: int) -> int:
        """Clamp the requested defender dice to [1, 2] and to the armies present."""
        dice = max(1, min(MAX_DEFENDER_DICE, requested))
        return max(0, min(dice, army_count))

    @staticmethod
    def resolve_combat(attacker_dice: List[int], defender_dice: List[int]) -> Tuple[int, int]:
        """
        Resolve combat between attacker and defender dice.
        Returns (attacker_losses, defender_losses). Ties go to the defender.
        """
        attacker_losses = 0
        defender_losses = 0

        # Compare dice in pairs, highest vs highest
        comparisons = min(len(attacker_dice), len(defender_dice))

        for i in range(comparisons):
            if attacker_dice[i] > defender_dice[i]:
                defender_losses += 1
            else:
                attacker_losses += 1

        return attacker_losses, defender_losses

    @classmethod
    def conduct_battle(cls, attacking_armies: int, defending_armies: int,
                       attacker_dice_requested: int, defender_dice_requested: int,
                       rng: GameRng,
                       attacker_roll: Optional[List[int]] = None,
                       defender_roll: Optional[List[int]] = None) -> BattleResult:
        """
        Conduct a single round between attacking and defending armies.

        Pre-rolled dice may be supplied; they are sorted and truncated to the
        clamped dice counts. The attacking territory is never reduced below
        one army by this step.
        """
        attacker_dice_count = cls.get_attacker_dice_count(attacking_armies, attacker_dice_requested)
        defender_dice_count = cls.get_defender_dice_count(defending_armies, defender_dice_requested)

        if attacker_roll is None:
            attacker_dice = cls.roll_dice(attacker_dice_count, rng)
        else:
            attacker_dice = sorted(attacker_roll, reverse=True)[:attacker_dice_count]
        if defender_roll is None:
            defender_dice = cls.roll_dice(defender_dice_count, rng)
        else:
            defender_dice = sorted(defender_roll, reverse=True)[:defender_dice_count]

        attacker_losses, defender_losses = cls.resolve_combat(attacker_dice, defender_dice)

        defender_remaining = defending_armies - defender_losses
        conquered = defender_remaining <= 0

        return BattleResult(
            attacker_losses=attacker_losses,
            defender_losses=defender_losses,
            attacker_dice=attacker_dice,
            defender_dice=defender_dice,
            conquered=conquered,
            attacker_remaining=max(1, attacking_armies - attacker_losses),
            defender_remaining=max(0, defender_remaining)
        )
