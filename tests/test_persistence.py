"""Tests for snapshots and the file-backed persistence gateway."""

import copy
import json

import pytest

from conquest.game.game_state import GameState
from conquest.game.phases import GamePhase
from conquest.utils.game_manager import GameManager

from .helpers import enter_attack, make_game, set_board


def advanced_game():
    game = make_game(names=("Ann", "Bob", "Cat"), seed="persist")
    set_board(game, {"kamchatka": 1, "madagascar": 2}, armies={"alaska": 12})
    enter_attack(game, turn=3)
    game.select_attack_from("alaska")
    game.select_attack_to("kamchatka")
    game.execute_attack(3, 1, instant=False)
    return game


def without_generation(snapshot):
    data = dict(snapshot)
    data.pop("generation")
    return data


class TestSnapshot:

    def test_restore_round_trip(self):
        game = advanced_game()
        snapshot = game.to_snapshot()

        restored = GameState("other", seed="unrelated")
        assert restored.restore_snapshot(copy.deepcopy(snapshot))
        assert without_generation(restored.to_snapshot()) == without_generation(snapshot)
        assert restored.phase == GamePhase.ATTACK
        assert restored.attack_from == "alaska"

    def test_restored_rng_continues_sequence(self):
        game = advanced_game()
        restored = GameState("other", seed="unrelated")
        restored.restore_snapshot(game.to_snapshot())
        assert [restored.rng.roll_die() for _ in range(20)] == [game.rng.roll_die() for _ in range(20)]

    def test_malformed_snapshot_leaves_state_untouched(self, game):
        before = game.to_snapshot()
        assert not game.restore_snapshot({"phase": "bogus"})
        assert game.to_snapshot() == before

    def test_territory_mismatch_rejected(self, game):
        before = game.to_snapshot()
        data = copy.deepcopy(before)
        data["territories"].pop("alaska")
        assert not game.restore_snapshot(data)
        assert game.to_snapshot() == before

    def test_unknown_owner_rejected(self, game):
        before = game.to_snapshot()
        data = copy.deepcopy(before)
        data["territories"]["alaska"]["owner"] = 7
        assert not game.restore_snapshot(data)
        assert game.to_snapshot() == before

    def test_unknown_map_rejected(self, game):
        data = copy.deepcopy(game.to_snapshot())
        data["selected_map"] = "atlantis"
        assert not game.restore_snapshot(data)
        assert game.selected_map == "world"

    @pytest.mark.parametrize("changes", [
        {"attack_from": "atlantis"},
        {"attack_to": "atlantis"},
        {"fortify_from": "atlantis"},
        {"fortify_to": "atlantis"},
        {"phase": "placement", "placement_stage": None},
        {"placement_reserves": {9: 3}},
        {"attack_from": None, "attack_to": None},
    ])
    def test_dangling_references_rejected(self, game, changes):
        data = copy.deepcopy(advanced_game().to_snapshot())
        data["last_battle_result"]["conquered"] = True
        data.update(changes)

        before = game.to_snapshot()
        assert not game.restore_snapshot(data)
        assert game.to_snapshot() == before

    def test_corrupt_conquest_cannot_break_later_moves(self, game):
        data = copy.deepcopy(advanced_game().to_snapshot())
        data["attack_from"] = "atlantis"
        data["last_battle_result"]["conquered"] = True

        assert not game.restore_snapshot(data)
        assert not game.conquest_move(1)

    def test_players_required_outside_setup(self, game):
        data = copy.deepcopy(game.to_snapshot())
        data["players"] = []
        for territory in data["territories"].values():
            territory["owner"] = -1
        data["placement_reserves"] = {}
        assert not game.restore_snapshot(data)

    def test_restore_bumps_generation(self, game):
        snapshot = game.to_snapshot()
        assert game.restore_snapshot(snapshot)
        assert game.generation > snapshot["generation"]


class TestGamePersistence:

    def test_save_and_load(self, tmp_persistence):
        game = advanced_game()
        assert tmp_persistence.save_game_state("g1", game.to_snapshot())

        data = tmp_persistence.load_game_state("g1")
        restored = GameState("g1", seed="other")
        assert restored.restore_snapshot(data)
        assert without_generation(restored.to_snapshot()) == without_generation(game.to_snapshot())

    def test_missing_save(self, tmp_persistence):
        assert tmp_persistence.load_game_state("nope") is None

    def test_corrupt_file(self, tmp_persistence):
        tmp_persistence.games_dir.mkdir(parents=True)
        tmp_persistence.get_game_file_path("bad").write_text("{not json", encoding="utf-8")
        assert tmp_persistence.load_game_state("bad") is None

    def test_invalid_snapshot_in_file(self, tmp_persistence):
        tmp_persistence.games_dir.mkdir(parents=True)
        payload = {"game_id": "bad", "game_state": {"phase": "draft"}}
        tmp_persistence.get_game_file_path("bad").write_text(json.dumps(payload), encoding="utf-8")
        assert tmp_persistence.load_game_state("bad") is None

    def test_refuses_to_save_malformed_snapshot(self, tmp_persistence):
        assert not tmp_persistence.save_game_state("bad", {"phase": "draft"})
        assert tmp_persistence.list_saved_games() == []

    def test_list_and_delete(self, tmp_persistence, game):
        tmp_persistence.save_game_state("b", game.to_snapshot())
        tmp_persistence.save_game_state("a", game.to_snapshot())
        assert tmp_persistence.list_saved_games() == ["a", "b"]
        assert tmp_persistence.get_save_info("a")["game_id"] == "a"

        assert tmp_persistence.delete_game_state("a")
        assert tmp_persistence.list_saved_games() == ["b"]
        assert not list(tmp_persistence.games_dir.glob("*.tmp"))


class TestGameManager:

    def test_create_save_load(self, tmp_persistence):
        manager = GameManager(tmp_persistence)
        success, game_id, _ = manager.create_game(["Ann", "Bob"], 2, seed="manager")
        assert success
        game = manager.get_game(game_id)
        target = game.get_player_territories(0)[0]
        assert manager.save_game(game_id)

        game.place_draft_army(target)
        loaded = manager.load_game(game_id)
        assert loaded is game
        assert game.draft_armies == 6
        assert game.draft_has_placed is False

    def test_failed_load_keeps_game(self, tmp_persistence):
        manager = GameManager(tmp_persistence)
        _, game_id, _ = manager.create_game(["Ann", "Bob"], 2, seed="manager")
        assert manager.load_game(game_id) is None
        assert manager.get_game(game_id).phase == GamePhase.DRAFT

    def test_rejects_bad_player_count(self, tmp_persistence):
        manager = GameManager(tmp_persistence)
        assert manager.create_game(["Solo"])[0] is False
        assert manager.create_game([str(i) for i in range(7)])[0] is False

    def test_delete_saved_game(self, tmp_persistence):
        manager = GameManager(tmp_persistence)
        _, game_id, _ = manager.create_game(["Ann", "Bob"], 2, seed="delete")
        manager.save_game(game_id)
        assert manager.list_saved_games() == [game_id]

        assert manager.delete_saved_game(game_id)
        assert manager.list_saved_games() == []
        assert manager.load_game(game_id) is None

    def test_list_and_cleanup(self, tmp_persistence):
        manager = GameManager(tmp_persistence)
        _, game_id, _ = manager.create_game(["Ann", "Bob"], 2, seed="list")
        assert [g["game_id"] for g in manager.list_active_games()] == [game_id]

        manager.get_game(game_id).winner = 0
        assert manager.cleanup_finished_games() == 1
        assert manager.get_game_count() == 0
