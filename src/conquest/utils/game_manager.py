import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from ..game.game_state import GameState
from ..game.settings import GameSettings
from ..game.territory import get_map_by_id
from ..persistence.game_persistence import GamePersistence
from .config import load_config
from .logger import conquest_logger


class GameManager:
    """Manages the in-memory games served by the API."""

    def __init__(self, persistence: Optional[GamePersistence] = None):
        self.games: Dict[str, GameState] = {}
        self.persistence = persistence or GamePersistence()

    def default_settings(self) -> GameSettings:
        """Settings taken from the environment configuration."""
        config = load_config()
        return GameSettings.from_dict({
            'placement_mode': config.placement_mode,
            'battle_speed': config.battle_speed,
            'resource_level': config.resource_level,
            'map_id': config.default_map
        })

    def create_game(self, player_names: Sequence[str], human_player_count: int = 0,
                    settings: Optional[GameSettings] = None, seed: Optional[str] = None,
                    custom_colors: Optional[Sequence[Optional[str]]] = None) -> Tuple[bool, str, str]:
        """
        Create and start a new game.
        Returns (success, game_id, message).
        """
        if len(player_names) < 2 or len(player_names) > 6:
            return False, "", "Number of players must be between 2 and 6"

        if settings is None:
            try:
                settings = self.default_settings()
            except ValueError as e:
                conquest_logger.log_error(f"Invalid game settings in environment: {e}")
                return False, "", "Invalid default game settings"

        if get_map_by_id(settings.map_id) is None:
            return False, "", f"Unknown map: {settings.map_id}"

        game_id = str(uuid.uuid4())[:8]
        game = GameState(game_id, settings=settings, seed=seed if seed is not None else load_config().seed)
        if not game.init_game(player_names, human_player_count, custom_colors=custom_colors):
            return False, "", "Game could not be started"

        self.games[game_id] = game
        return True, game_id, f"Game {game_id} created with {len(player_names)} players"

    def get_game(self, game_id: str) -> Optional[GameState]:
        """Get a game by ID."""
        return self.games.get(game_id)

    def list_active_games(self) -> List[dict]:
        """List all active games."""
        games_info = []
        for game_id, game in self.games.items():
            current = game.get_current_player()
            games_info.append({
                'game_id': game_id,
                'map': game.selected_map,
                'phase': game.phase.value,
                'players': [player.to_dict() for player in game.players],
                'current_player': current.name if current else None,
                'turn': game.turn,
                'winner': game.winner,
                'created_at': game.created_at.isoformat()
            })
        return games_info

    def remove_game(self, game_id: str) -> bool:
        game = self.games.pop(game_id, None)
        if game is None:
            return False
        game.scheduler.cancel_all()
        return True

    def cleanup_finished_games(self) -> int:
        """Remove won games from memory. Returns number of games removed."""
        finished_games = [game_id for game_id, game in self.games.items() if game.winner is not None]
        for game_id in finished_games:
            self.remove_game(game_id)
        return len(finished_games)

    def get_game_count(self) -> int:
        """Get the total number of active games."""
        return len(self.games)

    def save_game(self, game_id: str) -> bool:
        """Save a game to persistent storage."""
        game = self.get_game(game_id)
        if not game:
            return False
        return self.persistence.save_game_state(game_id, game.to_snapshot())

    def load_game(self, game_id: str) -> Optional[GameState]:
        """
        Restore a saved game. An existing in-memory game is only replaced when
        the snapshot loads cleanly.
        """
        data = self.persistence.load_game_state(game_id)
        if data is None:
            return None

        game = self.games.get(game_id) or GameState(game_id)
        if not game.restore_snapshot(data):
            return None

        self.games[game_id] = game
        conquest_logger.log_info(f"Loaded game {game_id} on '{game.selected_map}' at turn {game.turn}")
        return game

    def list_saved_games(self) -> List[str]:
        return self.persistence.list_saved_games()

    def delete_saved_game(self, game_id: str) -> bool:
        return self.persistence.delete_game_state(game_id)


# Global game manager instance
game_manager = GameManager()
