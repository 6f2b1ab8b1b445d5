import pytest

from conquest.game.game_state import GameState
from conquest.persistence.game_persistence import GamePersistence

from .helpers import make_game


@pytest.fixture
def game() -> GameState:
    return make_game()


@pytest.fixture
def tmp_persistence(tmp_path) -> GamePersistence:
    return GamePersistence(str(tmp_path))
