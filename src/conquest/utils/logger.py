# -*- coding: utf-8 -*-
import logging
import sys
import time
from datetime import datetime
from typing import Any, Optional

from .config import load_config


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    # Colors
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'

    # Bright colors
    BRIGHT_RED = '\033[91m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'


class ConquestLogger:
    """Engine logger with colored event output and running statistics."""

    def __init__(self, log_file: Optional[str] = None):
        self.start_time = time.time()
        self.game_stats = {
            'games_created': 0,
            'battles_fought': 0,
            'territories_conquered': 0,
            'players_eliminated': 0,
            'cards_redeemed': 0
        }
        self.setup_logging(log_file)

    def setup_logging(self, log_file: Optional[str] = None):
        """Setup structured logging."""
        self.logger = logging.getLogger('conquest')
        self.logger.setLevel(logging.DEBUG)

        if self.logger.handlers:
            return

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

        # Console handler only carries warnings and up; events are echoed in color
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        # File handler for detailed logs
        if log_file:
            try:
                file_handler = logging.FileHandler(log_file)
            except OSError as e:
                self.logger.warning(f"Cannot open log file {log_file}: {e}")
            else:
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)

    def log_game_event(self, event_type: str, message: str, game_id: Optional[str] = None):
        """Log significant game events."""
        timestamp = datetime.now().strftime('%H:%M:%S')

        # Choose color based on event type
        color_map = {
            'game_created': Colors.BRIGHT_GREEN,
            'placement': Colors.CYAN,
            'battle': Colors.BRIGHT_RED,
            'territory_conquered': Colors.BRIGHT_YELLOW,
            'player_eliminated': Colors.BRIGHT_MAGENTA,
            'game_won': Colors.BRIGHT_GREEN,
            'card_redeemed': Colors.YELLOW,
            'card_drawn': Colors.YELLOW,
            'fortify': Colors.BLUE,
            'turn_ended': Colors.CYAN
        }
        icon_map = {
            'game_created': '🎮',
            'placement': '📍',
            'battle': '⚔️',
            'territory_conquered': '🏆',
            'player_eliminated': '💀',
            'game_won': '🎉',
            'card_redeemed': '🃏',
            'card_drawn': '🃏',
            'fortify': '🛡️',
            'turn_ended': '🔄'
        }

        color = color_map.get(event_type, Colors.WHITE)
        icon = icon_map.get(event_type, '📢')
        game_info = f" [{game_id[:8]}]" if game_id else ""

        log_message = f"{color}{icon} [{timestamp}]{game_info} {message}{Colors.RESET}"
        print(log_message, file=sys.stderr)

        if event_type == 'game_created':
            self.game_stats['games_created'] += 1
        elif event_type == 'territory_conquered':
            self.game_stats['territories_conquered'] += 1
        elif event_type == 'player_eliminated':
            self.game_stats['players_eliminated'] += 1
        elif event_type == 'card_redeemed':
            self.game_stats['cards_redeemed'] += 1

        self.logger.info(f"{event_type.upper()}: {message} (game: {game_id})")

    def log_combat_result(self, attacker: str, defender: str, from_territory: str,
                          to_territory: str, result: Any, game_id: Optional[str] = None):
        """Log combat results with detailed info."""
        timestamp = datetime.now().strftime('%H:%M:%S')

        attacker_dice = ', '.join(map(str, result.attacker_dice))
        defender_dice = ', '.join(map(str, result.defender_dice))

        if result.conquered:
            color = Colors.BRIGHT_YELLOW
            outcome = f"CONQUERED! {to_territory} taken by {attacker}"
        else:
            color = Colors.BRIGHT_RED
            outcome = f"DEFENDED! {to_territory} holds against {attacker}"

        print(f"{color}⚔️ [{timestamp}] BATTLE: {from_territory} → {to_territory}{Colors.RESET}", file=sys.stderr)
        print(f"{Colors.DIM}   Attacker ({attacker}): [{attacker_dice}] Lost: {result.attacker_losses}{Colors.RESET}", file=sys.stderr)
        print(f"{Colors.DIM}   Defender ({defender}): [{defender_dice}] Lost: {result.defender_losses}{Colors.RESET}", file=sys.stderr)
        print(f"{color}   {outcome}{Colors.RESET}", file=sys.stderr)

        self.logger.info(
            f"BATTLE: {from_territory} -> {to_territory} [{attacker_dice}] vs [{defender_dice}] "
            f"losses {result.attacker_losses}/{result.defender_losses} (game: {game_id})"
        )
        self.game_stats['battles_fought'] += 1

    def log_error(self, error: str, context: str = ""):
        """Log errors with prominent display."""
        timestamp = datetime.now().strftime('%H:%M:%S')
        context_str = f" ({context})" if context else ""

        print(f"{Colors.BRIGHT_RED}❌ [{timestamp}] ERROR{context_str}: {error}{Colors.RESET}", file=sys.stderr)
        self.logger.error(f"ERROR{context_str}: {error}")

    def uptime(self) -> float:
        """Seconds since the logger was created."""
        return time.time() - self.start_time

    def log_info(self, message: str):
        """Log general information."""
        timestamp = datetime.now().strftime('%H:%M:%S')
        print(f"{Colors.CYAN}ℹ️  [{timestamp}] {message}{Colors.RESET}", file=sys.stderr)
        self.logger.info(message)

    def log_debug(self, message: str):
        """Log rejected actions and other detail only to the log file."""
        self.logger.debug(message)


# Global logger instance
conquest_logger = ConquestLogger(load_config().log_file)
