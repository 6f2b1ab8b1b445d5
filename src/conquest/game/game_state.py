import uuid
from typing import Dict, List, Optional, Sequence, Union
from datetime import datetime

from pydantic import ValidationError

from . import ai
from .cards import CardManager, FORCED_REDEMPTION_HAND_SIZE, MAX_FORCED_REDEMPTIONS
from .combat import BattleResult, CombatEngine
from .phases import GamePhase, PlacementStage
from .history import GameHistory, HistoryEntry
from .player import DEFAULT_COLORS, Player
from .rng import GameRng
from .scheduler import DeferredScheduler
from .settings import BattleSpeed, GameSettings, PlacementMode
from .territory import NEUTRAL, TerritoryManager, TerritoryState, get_map_by_id
from . import victory
from ..persistence.snapshot import GameSnapshot
from ..utils.logger import conquest_logger

PLACEMENT_RESERVE = 6
OPENING_DRAFT_ARMIES = 6
MIN_DRAFT_ARMIES = 3
MAX_INSTANT_ROUNDS = 200


class GameState:
    """
    Phase state machine for one game.

    Every public operation validates its preconditions and returns False
    (or None) without touching state when they do not hold. Illegal actions
    never raise.
    """

    def __init__(self, game_id: Optional[str] = None, settings: Optional[GameSettings] = None,
                 seed: Optional[str] = None):
        self.game_id = game_id or str(uuid.uuid4())[:8]
        self.settings = settings or GameSettings()
        self.rng = GameRng(seed)
        self.created_at = datetime.now()

        self.selected_map: Optional[str] = None
        self.territory_manager: Optional[TerritoryManager] = None
        self.card_manager: Optional[CardManager] = None
        self.players: List[Player] = []

        self.phase = GamePhase.SETUP
        self.placement_stage: Optional[PlacementStage] = None
        self.placement_reserves: Dict[int, int] = {}
        self.current_player_index = 0
        self.turn = 0
        self.draft_armies = 0
        self.draft_has_placed = False

        self.attack_from: Optional[str] = None
        self.attack_to: Optional[str] = None
        self.last_battle_result: Optional[BattleResult] = None
        self.conquest_made_this_turn = False
        self.fortify_from: Optional[str] = None
        self.fortify_to: Optional[str] = None

        self.history = GameHistory()
        self.winner: Optional[int] = None

        # Moves on every phase, stage or current-player transition
        self.generation = 0
        self.scheduler = DeferredScheduler(lambda: self.generation)

        self.set_map(self.settings.map_id)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def set_map(self, map_id: str) -> bool:
        """Load a map and make every territory neutral. Only legal before the game starts."""
        if self.phase != GamePhase.SETUP:
            return self._reject("set_map", "game already started")

        definition = get_map_by_id(map_id)
        if definition is None:
            conquest_logger.log_error(f"Unknown map id: {map_id}", self.game_id)
            return False

        self.selected_map = map_id
        self.settings.map_id = map_id
        self.territory_manager = TerritoryManager(definition)
        return True

    def init_game(self, player_names: Sequence[str], human_player_count: int,
                  placement_mode_override: Optional[Union[str, PlacementMode]] = None,
                  custom_colors: Optional[Sequence[Optional[str]]] = None) -> bool:
        """Create the roster and deal the opening position."""
        if self.territory_manager is None:
            conquest_logger.log_error("Cannot start a game without a map", self.game_id)
            return False

        if len(player_names) < 2:
            conquest_logger.log_error("At least two players are required", self.game_id)
            return False

        try:
            mode = PlacementMode(placement_mode_override) if placement_mode_override else self.settings.placement_mode
        except ValueError:
            conquest_logger.log_error(f"Unknown placement mode: {placement_mode_override}", self.game_id)
            return False

        self.scheduler.cancel_all()
        self.settings.placement_mode = mode

        self.players = []
        for i, name in enumerate(player_names):
            color = DEFAULT_COLORS[i % len(DEFAULT_COLORS)]
            if custom_colors and i < len(custom_colors) and custom_colors[i]:
                color = custom_colors[i]
            self.players.append(Player(
                player_id=i,
                name=name,
                color=color,
                is_human=i < human_player_count
            ))

        self.territory_manager.reset()
        self.card_manager = CardManager(self.territory_manager.map_definition.territory_ids(), self.rng)
        self.history = GameHistory()
        self.winner = None
        self._clear_attack()
        self._clear_fortify()
        self.conquest_made_this_turn = False
        self.draft_has_placed = False
        self.current_player_index = 0

        if mode == PlacementMode.SEQUENTIAL:
            self.phase = GamePhase.PLACEMENT
            self.placement_stage = PlacementStage.CLAIM
            self.placement_reserves = {p.player_id: PLACEMENT_RESERVE for p in self.players}
            self.turn = 0
            self.draft_armies = 0
        else:
            territory_ids = self.territory_manager.map_definition.territory_ids()
            self.rng.shuffle(territory_ids)
            for i, territory_id in enumerate(territory_ids):
                territory = self.territory_manager.get_territory(territory_id)
                territory.set_owner(self.players[i % len(self.players)].player_id)
                territory.army_count = 1
            self.phase = GamePhase.DRAFT
            self.placement_stage = None
            self.placement_reserves = {p.player_id: 0 for p in self.players}
            self.turn = 1
            self.draft_armies = OPENING_DRAFT_ARMIES

        self.history.append(self.turn, self.current_player_index, "init_game",
                            placement_mode=mode.value, players=list(player_names))
        conquest_logger.log_game_event(
            'game_created',
            f"{len(self.players)} players on '{self.selected_map}' ({mode.value} placement)",
            self.game_id
        )
        self._transition()
        return True

    def reset(self) -> None:
        """Return to the setup phase on the currently selected map."""
        self.scheduler.cancel_all()
        self.players = []
        self.phase = GamePhase.SETUP
        self.placement_stage = None
        self.placement_reserves = {}
        self.current_player_index = 0
        self.turn = 0
        self.draft_armies = 0
        self.draft_has_placed = False
        self.conquest_made_this_turn = False
        self._clear_attack()
        self._clear_fortify()
        self.card_manager = None
        self.history = GameHistory()
        self.winner = None
        if self.territory_manager:
            self.territory_manager.reset()
        self.generation += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_player(self) -> Optional[Player]:
        """Get the current player whose turn it is."""
        if not self.players:
            return None
        return self.players[self.current_player_index]

    def get_territory_state(self, territory_id: str) -> Optional[TerritoryState]:
        if self.territory_manager is None:
            return None
        return self.territory_manager.get_territory(territory_id)

    def get_player_territories(self, player_id: int) -> List[str]:
        """Ids of every territory the player owns."""
        if self.territory_manager is None:
            return []
        return [t.territory_id for t in self.territory_manager.get_territories_by_owner(player_id)]

    def get_adjacent_enemy_territories(self, territory_id: str) -> List[str]:
        """Neighbors of a territory held by anyone other than its owner."""
        territory = self.get_territory_state(territory_id)
        if territory is None:
            return []
        return [
            neighbor_id for neighbor_id in self.territory_manager.get_neighbors(territory_id)
            if self.territory_manager.get_territory(neighbor_id).owner != territory.owner
        ]

    def calculate_draft_armies(self, player_id: Optional[int] = None) -> int:
        """Reinforcements: territories / 3 (minimum 3) plus continent bonuses."""
        if self.territory_manager is None:
            return 0
        if player_id is None:
            player_id = self.current_player_index
        owned = len(self.territory_manager.get_territories_by_owner(player_id))
        base_armies = max(MIN_DRAFT_ARMIES, owned // 3)
        bonus_armies = sum(self.territory_manager.get_player_continent_bonuses(player_id).values())
        return base_armies + bonus_armies

    @property
    def pending_conquest(self) -> bool:
        """True while a conquering result awaits its conquest move."""
        return (
            self.last_battle_result is not None
            and self.last_battle_result.conquered
            and self.attack_from is not None
            and self.attack_to is not None
        )

    def check_win_condition(self) -> Optional[int]:
        """Refresh alive flags; return the winner's id once one player owns everything."""
        if self.territory_manager is None or self.phase in (GamePhase.SETUP, GamePhase.PLACEMENT):
            return None

        winner = victory.check_win_condition(self.territory_manager, self.players)
        if winner is not None and self.winner is None:
            self.winner = winner
            self.scheduler.cancel_all()
            self.history.append(self.turn, winner, "game_won")
            conquest_logger.log_game_event(
                'game_won', f"{self.players[winner].name} controls every territory", self.game_id
            )
        return winner

    # ------------------------------------------------------------------
    # Placement and draft
    # ------------------------------------------------------------------

    def place_draft_army(self, territory_id: str) -> bool:
        """Place one army: claim, distribute or draft depending on the phase."""
        player = self.get_current_player()
        territory = self.get_territory_state(territory_id)
        if player is None or territory is None:
            return self._reject("place_draft_army", f"unknown territory {territory_id}")

        if self.phase == GamePhase.PLACEMENT:
            if self.placement_stage == PlacementStage.CLAIM:
                return self._claim(player, territory)
            return self._distribute(player, territory)

        if self.phase == GamePhase.DRAFT:
            return self._draft(player, territory)

        return self._reject("place_draft_army", f"not legal during {self.phase.value}")

    def _claim(self, player: Player, territory: TerritoryState) -> bool:
        if not territory.is_neutral():
            return self._reject("claim", f"{territory.territory_id} is already owned")

        territory.set_owner(player.player_id)
        territory.army_count = 1
        self.history.append(self.turn, player.player_id, "claim", territory=territory.territory_id)
        conquest_logger.log_debug(f"{player.name} claimed {territory.territory_id}")

        self.current_player_index = (self.current_player_index + 1) % len(self.players)
        if not self.territory_manager.get_neutral_territories():
            self.placement_stage = PlacementStage.DISTRIBUTE
            self.draft_armies = self.placement_reserves.get(self.current_player_index, 0)
        self._transition()
        return True

    def _distribute(self, player: Player, territory: TerritoryState) -> bool:
        if not territory.is_owned_by(player.player_id):
            return self._reject("distribute", f"{territory.territory_id} is not owned by {player.name}")
        if self.placement_reserves.get(player.player_id, 0) <= 0:
            return self._reject("distribute", f"{player.name} has no reserve left")

        self.placement_reserves[player.player_id] -= 1
        territory.add_armies(1)
        self.history.append(self.turn, player.player_id, "distribute", territory=territory.territory_id)

        if sum(self.placement_reserves.values()) == 0:
            self.current_player_index = 0
            self.turn = 1
            conquest_logger.log_game_event('placement', "Placement complete, drafting begins", self.game_id)
            self._begin_draft_turn()
            return True

        self.current_player_index = self._next_reserve_holder()
        self.draft_armies = self.placement_reserves[self.current_player_index]
        self._transition()
        return True

    def _next_reserve_holder(self) -> int:
        count = len(self.players)
        for step in range(1, count + 1):
            index = (self.current_player_index + step) % count
            if self.placement_reserves.get(index, 0) > 0:
                return index
        return self.current_player_index

    def _draft(self, player: Player, territory: TerritoryState) -> bool:
        if not territory.is_owned_by(player.player_id):
            return self._reject("draft", f"{territory.territory_id} is not owned by {player.name}")
        if self.draft_armies <= 0:
            return self._reject("draft", "no draft armies left")

        if not self.draft_has_placed:
            self._force_redemption(player)
            if len(player.cards) >= FORCED_REDEMPTION_HAND_SIZE:
                return self._reject("draft", f"{player.name} must redeem cards first")

        territory.add_armies(1)
        self.draft_armies -= 1
        self.draft_has_placed = True
        self.history.append(self.turn, player.player_id, "draft", territory=territory.territory_id)

        if self.draft_armies == 0:
            if self.turn == 1:
                # Opening round goes straight to the next player's draft
                self._end_turn()
            else:
                self.phase = GamePhase.ATTACK
                self._transition()
        return True

    def redeem_cards(self) -> bool:
        """Trade the best available set for armies. Only before placing this turn."""
        player = self.get_current_player()
        if player is None or self.phase != GamePhase.DRAFT:
            return self._reject("redeem_cards", "only legal during draft")
        if self.draft_has_placed:
            return self._reject("redeem_cards", "armies already placed this turn")
        return self._redeem_best_set(player)

    def _redeem_best_set(self, player: Player) -> bool:
        best = CardManager.find_best_set(player.cards)
        if best is None:
            return self._reject("redeem_cards", f"{player.name} holds no set")

        award, indices = best
        cards = player.remove_cards(indices)
        self.draft_armies += award
        self.history.append(self.turn, player.player_id, "redeem", award=award,
                            cards=[card.card_type.value for card in cards])
        conquest_logger.log_game_event(
            'card_redeemed', f"{player.name} redeemed {CardManager.format_cards(cards)} for {award} armies",
            self.game_id
        )
        return True

    def _force_redemption(self, player: Player) -> int:
        """Redeem while the hand is too large, at most MAX_FORCED_REDEMPTIONS times."""
        redeemed = 0
        while len(player.cards) >= FORCED_REDEMPTION_HAND_SIZE and redeemed < MAX_FORCED_REDEMPTIONS:
            if not self._redeem_best_set(player):
                break
            redeemed += 1
        return redeemed

    # ------------------------------------------------------------------
    # Attack
    # ------------------------------------------------------------------

    def select_attack_from(self, territory_id: str) -> bool:
        player = self.get_current_player()
        territory = self.get_territory_state(territory_id)
        if self.phase != GamePhase.ATTACK or self.pending_conquest:
            return self._reject("select_attack_from", "not selectable now")
        if player is None or territory is None or not territory.is_owned_by(player.player_id):
            return self._reject("select_attack_from", f"{territory_id} is not owned by the current player")
        if not territory.can_attack_from():
            return self._reject("select_attack_from", "need more than 1 army to attack")

        self.attack_from = territory_id
        self.attack_to = None
        self.last_battle_result = None
        return True

    def select_attack_to(self, territory_id: str) -> bool:
        player = self.get_current_player()
        territory = self.get_territory_state(territory_id)
        if self.phase != GamePhase.ATTACK or self.pending_conquest or self.attack_from is None:
            return self._reject("select_attack_to", "no attacking territory selected")
        if player is None or territory is None or territory.is_owned_by(player.player_id):
            return self._reject("select_attack_to", f"cannot attack {territory_id}")
        if not self.territory_manager.are_adjacent(self.attack_from, territory_id):
            return self._reject("select_attack_to", f"{territory_id} is not adjacent to {self.attack_from}")
        if territory.army_count < 1:
            return self._reject("select_attack_to", f"{territory_id} has no defending armies")

        self.attack_to = territory_id
        return True

    def select_attack(self, from_id: str, to_id: str) -> bool:
        """Select both ends of an attack. On failure the previous selection is kept."""
        previous = (self.attack_from, self.attack_to, self.last_battle_result)
        if self.select_attack_from(from_id) and self.select_attack_to(to_id):
            return True
        self.attack_from, self.attack_to, self.last_battle_result = previous
        return False

    def execute_attack(self, attacker_dice: int = 3, defender_dice: int = 2,
                       instant: Optional[bool] = None) -> Optional[BattleResult]:
        """
        Resolve the selected attack.

        A single dice round by default; with instant resolution rounds repeat
        until the defender falls or the attacker is down to one army.
        Returns the last round's result, or None when the attack is illegal.
        """
        player = self.get_current_player()
        if self.phase != GamePhase.ATTACK or self.pending_conquest:
            self._reject("execute_attack", "not in attack phase")
            return None
        if self.attack_from is None or self.attack_to is None:
            self._reject("execute_attack", "attack not selected")
            return None

        source = self.get_territory_state(self.attack_from)
        target = self.get_territory_state(self.attack_to)
        if (not source.is_owned_by(player.player_id) or not source.can_attack_from()
                or target.is_owned_by(player.player_id) or target.army_count < 1
                or not self.territory_manager.are_adjacent(self.attack_from, self.attack_to)):
            self._reject("execute_attack", "selection no longer valid")
            return None

        if instant is None:
            instant = self.settings.battle_speed == BattleSpeed.INSTANT

        defender_id = target.owner
        rounds = 0
        while True:
            result = CombatEngine.conduct_battle(
                source.army_count, target.army_count, attacker_dice, defender_dice, self.rng
            )
            source.army_count = result.attacker_remaining
            target.army_count = result.defender_remaining
            rounds += 1
            if result.conquered or not instant or source.army_count <= 1 or rounds >= MAX_INSTANT_ROUNDS:
                break

        self.last_battle_result = result
        if result.conquered:
            self.conquest_made_this_turn = True

        self.history.append(self.turn, player.player_id, "attack", source=self.attack_from,
                            target=self.attack_to, defender=defender_id, rounds=rounds, **result.to_dict())
        defender_name = self.players[defender_id].name if defender_id != NEUTRAL else "Neutral"
        conquest_logger.log_combat_result(
            player.name, defender_name, self.attack_from, self.attack_to, result, self.game_id
        )
        return result

    def conquest_move(self, armies: int) -> bool:
        """Move armies into the territory just conquered and take ownership."""
        player = self.get_current_player()
        if self.phase != GamePhase.ATTACK or not self.pending_conquest:
            return self._reject("conquest_move", "no conquest pending")

        source = self.get_territory_state(self.attack_from)
        target = self.get_territory_state(self.attack_to)
        if armies < 1 or armies >= source.army_count:
            return self._reject("conquest_move", f"cannot move {armies} of {source.army_count} armies")

        defender_id = target.owner
        source.remove_armies(armies)
        target.set_owner(player.player_id)
        target.army_count = armies

        self.history.append(self.turn, player.player_id, "conquest_move", source=self.attack_from,
                            target=self.attack_to, armies=armies)
        conquest_logger.log_game_event(
            'territory_conquered', f"{player.name} took {self.attack_to} and moved {armies} armies in",
            self.game_id
        )
        self._clear_attack()

        if defender_id != NEUTRAL and not self.get_player_territories(defender_id):
            defender = self.players[defender_id]
            for card in defender.take_all_cards():
                player.add_card(card)
            defender.alive = False
            self.history.append(self.turn, player.player_id, "eliminate", defeated=defender_id)
            conquest_logger.log_game_event(
                'player_eliminated', f"{defender.name} has been eliminated by {player.name}", self.game_id
            )

        self.check_win_condition()
        return True

    def end_attack_phase(self) -> bool:
        """Finish attacking; a turn with a conquest earns one card."""
        player = self.get_current_player()
        if self.phase != GamePhase.ATTACK or self.pending_conquest:
            return self._reject("end_attack_phase", "not possible now")

        if self.conquest_made_this_turn:
            card = self.card_manager.draw_card()
            player.add_card(card)
            self.history.append(self.turn, player.player_id, "draw_card", card_type=card.card_type.value)
            conquest_logger.log_game_event('card_drawn', f"{player.name} receives a {card.card_type.value} card",
                                           self.game_id)

        self._clear_attack()
        self._clear_fortify()
        self.phase = GamePhase.FORTIFY
        self._transition()
        return True

    # ------------------------------------------------------------------
    # Fortify
    # ------------------------------------------------------------------

    def select_fortify_from(self, territory_id: str) -> bool:
        player = self.get_current_player()
        territory = self.get_territory_state(territory_id)
        if self.phase != GamePhase.FORTIFY:
            return self._reject("select_fortify_from", "not in fortify phase")
        if player is None or territory is None or not territory.is_owned_by(player.player_id):
            return self._reject("select_fortify_from", f"{territory_id} is not owned by the current player")

        self.fortify_from = territory_id
        self.fortify_to = None
        return True

    def select_fortify_to(self, territory_id: str) -> bool:
        player = self.get_current_player()
        territory = self.get_territory_state(territory_id)
        if self.phase != GamePhase.FORTIFY or self.fortify_from is None:
            return self._reject("select_fortify_to", "no fortify source selected")
        if player is None or territory is None or not territory.is_owned_by(player.player_id):
            return self._reject("select_fortify_to", f"{territory_id} is not owned by the current player")
        if not self.territory_manager.are_adjacent(self.fortify_from, territory_id):
            return self._reject("select_fortify_to", f"{territory_id} is not adjacent to {self.fortify_from}")

        self.fortify_to = territory_id
        return True

    def fortify(self, from_id: str, to_id: str, armies: int) -> bool:
        """Select a route and move armies along it. On failure the previous selection is kept."""
        previous = (self.fortify_from, self.fortify_to)
        if self.select_fortify_from(from_id) and self.select_fortify_to(to_id) and self.execute_fortify(armies):
            return True
        self.fortify_from, self.fortify_to = previous
        return False

    def execute_fortify(self, armies: int = 0) -> bool:
        """Move armies between the selected territories, then end the turn."""
        player = self.get_current_player()
        if self.phase != GamePhase.FORTIFY:
            return self._reject("execute_fortify", "not in fortify phase")

        if armies != 0 and self.fortify_from is not None and self.fortify_to is not None:
            source = self.get_territory_state(self.fortify_from)
            target = self.get_territory_state(self.fortify_to)
            if armies < 1 or armies >= source.army_count:
                return self._reject("execute_fortify", f"cannot move {armies} of {source.army_count} armies")

            source.remove_armies(armies)
            target.add_armies(armies)
            self.history.append(self.turn, player.player_id, "fortify", source=self.fortify_from,
                                target=self.fortify_to, armies=armies)
            conquest_logger.log_game_event(
                'fortify', f"{player.name} moved {armies} armies from {self.fortify_from} to {self.fortify_to}",
                self.game_id
            )

        self._end_turn()
        return True

    def _end_turn(self) -> None:
        """Hand the turn to the next alive player and open their draft."""
        self._clear_attack()
        self._clear_fortify()

        previous = self.get_current_player()
        alive = [p.player_id for p in self.players if p.alive]
        if not alive:
            return

        if self.current_player_index in alive:
            next_position = (alive.index(self.current_player_index) + 1) % len(alive)
        else:
            later = [pid for pid in alive if pid > self.current_player_index]
            next_position = alive.index(later[0]) if later else 0

        if next_position == 0:
            self.turn += 1
        self.current_player_index = alive[next_position]

        self.history.append(self.turn, previous.player_id, "end_turn", next_player=self.current_player_index)
        conquest_logger.log_game_event(
            'turn_ended',
            f"Turn {self.turn}: {self.players[self.current_player_index].name}'s turn begins",
            self.game_id
        )
        self._begin_draft_turn()

    def _begin_draft_turn(self) -> None:
        self.phase = GamePhase.DRAFT
        self.placement_stage = None
        self.draft_has_placed = False
        self.conquest_made_this_turn = False
        self.draft_armies = self.calculate_draft_armies()
        self._force_redemption(self.get_current_player())
        self._transition()

    # ------------------------------------------------------------------
    # AI and deferred steps
    # ------------------------------------------------------------------

    def play_ai_turn(self) -> bool:
        """Run one AI decision step for the current player."""
        player = self.get_current_player()
        if player is None or player.is_human or not player.alive:
            return False
        if self.phase == GamePhase.SETUP or self.winner is not None:
            return False
        ai.play_ai_turn(self)
        return True

    def _transition(self) -> None:
        self.generation += 1
        self._schedule_ai()

    def _schedule_ai(self) -> None:
        if self.winner is not None or self.phase == GamePhase.SETUP:
            return
        player = self.get_current_player()
        if player is not None and not player.is_human and player.alive:
            self.scheduler.schedule(self.play_ai_turn, label=f"ai:{player.name}:{self.phase.value}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clear_attack(self) -> None:
        self.attack_from = None
        self.attack_to = None
        self.last_battle_result = None

    def _clear_fortify(self) -> None:
        self.fortify_from = None
        self.fortify_to = None

    def _reject(self, action: str, reason: str) -> bool:
        conquest_logger.log_debug(f"[{self.game_id}] rejected {action}: {reason}")
        return False

    def get_game_status(self) -> dict:
        """Get current game status."""
        current_player = self.get_current_player()
        last = self.history.last

        return {
            'game_id': self.game_id,
            'map': self.selected_map,
            'phase': self.phase.value,
            'placement_stage': self.placement_stage.value if self.placement_stage else None,
            'turn': self.turn,
            'current_player': current_player.name if current_player else None,
            'current_player_index': self.current_player_index,
            'draft_armies': self.draft_armies,
            'placement_reserves': dict(self.placement_reserves),
            'attack_from': self.attack_from,
            'attack_to': self.attack_to,
            'last_battle_result': self.last_battle_result.to_dict() if self.last_battle_result else None,
            'fortify_from': self.fortify_from,
            'fortify_to': self.fortify_to,
            'players': [
                {**p.to_dict(), 'territory_count': len(self.get_player_territories(p.player_id))}
                for p in self.players
            ],
            'winner': self.winner,
            'last_action': last.to_dict() if last else None,
            'settings': self.settings.to_dict(),
            'created_at': self.created_at.isoformat()
        }

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_snapshot(self) -> dict:
        """Flat record of the whole game for the persistence gateway."""
        return {
            'game_id': self.game_id,
            'selected_map': self.selected_map,
            'players': [p.to_dict() for p in self.players],
            'territories': self.territory_manager.to_dict() if self.territory_manager else {},
            'phase': self.phase.value,
            'current_player_index': self.current_player_index,
            'turn': self.turn,
            'draft_armies': self.draft_armies,
            'attack_from': self.attack_from,
            'attack_to': self.attack_to,
            'last_battle_result': self.last_battle_result.to_dict() if self.last_battle_result else None,
            'fortify_from': self.fortify_from,
            'fortify_to': self.fortify_to,
            'cards_deck': self.card_manager.to_list() if self.card_manager else [],
            'conquest_made_this_turn': self.conquest_made_this_turn,
            'draft_has_placed': self.draft_has_placed,
            'settings': self.settings.to_dict(),
            'history': self.history.to_list(),
            'placement_reserves': dict(self.placement_reserves),
            'placement_stage': self.placement_stage.value if self.placement_stage else None,
            'winner': self.winner,
            'rng_state': self.rng.get_state(),
            'generation': self.generation
        }

    def restore_snapshot(self, data: dict) -> bool:
        """
        Replace this game with a snapshot. All-or-nothing: on any problem the
        current state is left untouched and False is returned.
        """
        try:
            snapshot = GameSnapshot.model_validate(data)
        except ValidationError as e:
            conquest_logger.log_error(f"Malformed snapshot: {e.error_count()} validation errors", self.game_id)
            return False

        definition = get_map_by_id(snapshot.selected_map)
        if definition is None:
            conquest_logger.log_error(f"Snapshot references unknown map {snapshot.selected_map}", self.game_id)
            return False

        territory_manager = TerritoryManager(definition)
        if set(snapshot.territories) != set(territory_manager.territories):
            conquest_logger.log_error("Snapshot territories do not match the map", self.game_id)
            return False

        player_ids = {p.player_id for p in snapshot.players}
        if player_ids != set(range(len(snapshot.players))):
            conquest_logger.log_error("Snapshot player ids are not a contiguous roster", self.game_id)
            return False
        if snapshot.players and snapshot.current_player_index >= len(snapshot.players):
            conquest_logger.log_error("Snapshot current player is out of range", self.game_id)
            return False

        if snapshot.winner is not None and snapshot.winner not in player_ids:
            conquest_logger.log_error("Snapshot winner is not a player", self.game_id)
            return False

        if snapshot.phase != GamePhase.SETUP.value and not snapshot.players:
            conquest_logger.log_error("Snapshot has no players outside setup", self.game_id)
            return False
        if snapshot.phase == GamePhase.PLACEMENT.value and snapshot.placement_stage is None:
            conquest_logger.log_error("Snapshot placement phase has no stage", self.game_id)
            return False
        if not set(snapshot.placement_reserves) <= player_ids:
            conquest_logger.log_error("Snapshot reserves name unknown players", self.game_id)
            return False

        selections = (snapshot.attack_from, snapshot.attack_to, snapshot.fortify_from, snapshot.fortify_to)
        for territory_id in selections:
            if territory_id is not None and territory_id not in territory_manager.territories:
                conquest_logger.log_error(f"Snapshot selects unknown territory {territory_id}", self.game_id)
                return False
        if (snapshot.last_battle_result is not None and snapshot.last_battle_result.conquered
                and (snapshot.attack_from is None or snapshot.attack_to is None)):
            conquest_logger.log_error("Snapshot conquest has no attack selection", self.game_id)
            return False

        for territory_id, territory in snapshot.territories.items():
            if territory.owner != NEUTRAL and territory.owner not in player_ids:
                conquest_logger.log_error(f"Snapshot owner of {territory_id} is not a player", self.game_id)
                return False
            state = territory_manager.get_territory(territory_id)
            state.owner = territory.owner
            state.army_count = territory.army_count

        rng = GameRng(self.rng.seed)
        if snapshot.rng_state is not None:
            try:
                rng.set_state(snapshot.rng_state)
            except (TypeError, ValueError) as e:
                conquest_logger.log_error(f"Snapshot RNG state is invalid: {e}", self.game_id)
                return False

        card_manager = CardManager([], rng)
        card_manager.load_list([c.model_dump() for c in snapshot.cards_deck])

        self.scheduler.cancel_all()
        self.game_id = snapshot.game_id or self.game_id
        self.selected_map = snapshot.selected_map
        self.territory_manager = territory_manager
        self.card_manager = card_manager
        self.rng = rng
        self.settings = GameSettings.from_dict(snapshot.settings.model_dump())
        self.players = [Player.from_dict(p.model_dump()) for p in snapshot.players]
        self.phase = GamePhase(snapshot.phase)
        self.placement_stage = PlacementStage(snapshot.placement_stage) if snapshot.placement_stage else None
        self.placement_reserves = dict(snapshot.placement_reserves)
        self.current_player_index = snapshot.current_player_index
        self.turn = snapshot.turn
        self.draft_armies = snapshot.draft_armies
        self.draft_has_placed = snapshot.draft_has_placed
        self.attack_from = snapshot.attack_from
        self.attack_to = snapshot.attack_to
        self.last_battle_result = (
            BattleResult.from_dict(snapshot.last_battle_result.model_dump())
            if snapshot.last_battle_result else None
        )
        self.conquest_made_this_turn = snapshot.conquest_made_this_turn
        self.fortify_from = snapshot.fortify_from
        self.fortify_to = snapshot.fortify_to
        self.history = GameHistory([HistoryEntry.from_dict(h.model_dump()) for h in snapshot.history])
        self.winner = snapshot.winner
        self.generation = snapshot.generation
        self._transition()
        return True
