import random
import uuid
from typing import Any, List, Optional, Sequence


class GameRng:
    """Seeded random source carried in game state so games can be replayed."""

    def __init__(self, seed: Optional[str] = None):
        self.seed = seed if seed is not None else uuid.uuid4().hex
        self._random = random.Random(self.seed)

    def roll_die(self) -> int:
        return self._random.randint(1, 6)

    def shuffle(self, items: List[Any]) -> None:
        self._random.shuffle(items)

    def choice(self, items: Sequence[Any]) -> Any:
        return self._random.choice(items)

    def get_state(self) -> list:
        """JSON-friendly form of the generator state."""
        version, internal, gauss = self._random.getstate()
        return [version, list(internal), gauss]

    def set_state(self, state: list) -> None:
        version, internal, gauss = state
        self._random.setstate((version, tuple(internal), gauss))
