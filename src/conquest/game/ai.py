"""
Rule-based AI policy.

Each call makes one decision step for the current player through the same
public operations a human caller uses, so every move is re-validated by the
state machine. In sequential placement mode the AI always takes the
lexicographically first candidate; otherwise it picks at random with the
game's own RNG so seeded games replay identically.
"""
from typing import List, Optional

from .phases import GamePhase, PlacementStage
from .settings import PlacementMode

MAX_DRAFT_ITERATIONS = 200
MAX_ATTACK_ATTEMPTS = 3


def _pick(game, candidates: List[str]) -> Optional[str]:
    if not candidates:
        return None
    ordered = sorted(candidates)
    if game.settings.placement_mode == PlacementMode.SEQUENTIAL:
        return ordered[0]
    return game.rng.choice(ordered)


def play_ai_turn(game) -> None:
    """Dispatch one AI step according to the current phase."""
    if game.phase == GamePhase.PLACEMENT:
        if game.placement_stage == PlacementStage.CLAIM:
            _claim(game)
        else:
            _distribute(game)
    elif game.phase == GamePhase.DRAFT:
        _draft(game)
    elif game.phase == GamePhase.ATTACK:
        _attack(game)
    elif game.phase == GamePhase.FORTIFY:
        game.execute_fortify(0)


def _claim(game) -> None:
    neutral = [t.territory_id for t in game.territory_manager.get_neutral_territories()]
    target = _pick(game, neutral)
    if target:
        game.place_draft_army(target)


def _distribute(game) -> None:
    player = game.get_current_player()
    target = _pick(game, game.get_player_territories(player.player_id))
    if target:
        game.place_draft_army(target)


def _draft(game) -> None:
    player = game.get_current_player()
    turn = game.turn

    for _ in range(MAX_DRAFT_ITERATIONS):
        if (game.phase != GamePhase.DRAFT or game.winner is not None
                or game.get_current_player() is not player or game.turn != turn):
            break
        if game.draft_armies <= 0:
            break
        target = _pick(game, game.get_player_territories(player.player_id))
        if target is None or not game.place_draft_army(target):
            break


def _eligible_attackers(game, player_id: int) -> List[str]:
    return [
        territory_id for territory_id in game.get_player_territories(player_id)
        if game.get_territory_state(territory_id).can_attack_from()
        and game.get_adjacent_enemy_territories(territory_id)
    ]


def _attack(game) -> None:
    player = game.get_current_player()

    # No attacks in the opening round
    if game.turn == 1:
        game.end_attack_phase()
        return

    attempts = min(MAX_ATTACK_ATTEMPTS, len(_eligible_attackers(game, player.player_id)))
    for _ in range(attempts):
        if game.phase != GamePhase.ATTACK or game.winner is not None:
            break

        source_id = _pick(game, _eligible_attackers(game, player.player_id))
        if source_id is None:
            break
        target_id = _pick(game, game.get_adjacent_enemy_territories(source_id))
        if not game.select_attack_from(source_id) or not game.select_attack_to(target_id):
            break

        source = game.get_territory_state(source_id)
        target = game.get_territory_state(target_id)
        result = game.execute_attack(min(3, source.army_count - 1), min(2, target.army_count), instant=False)
        if result is None:
            break
        if result.conquered:
            game.conquest_move(max(1, source.army_count // 2))

    if game.phase == GamePhase.ATTACK and game.winner is None:
        game.end_attack_phase()
