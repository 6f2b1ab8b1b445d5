"""Tests for dice clamping and battle resolution."""

from conquest.game.combat import BattleResult, CombatEngine
from conquest.game.rng import GameRng


class TestDiceCounts:

    def test_attacker_dice_clamped_to_three(self):
        assert CombatEngine.get_attacker_dice_count(10, 5) == 3

    def test_attacker_dice_bounded_by_armies_minus_one(self):
        assert CombatEngine.get_attacker_dice_count(3, 3) == 2
        assert CombatEngine.get_attacker_dice_count(2, 3) == 1

    def test_attacker_needs_two_armies(self):
        assert CombatEngine.get_attacker_dice_count(1, 3) == 0

    def test_requests_below_one_become_one(self):
        assert CombatEngine.get_attacker_dice_count(10, 0) == 1
        assert CombatEngine.get_defender_dice_count(5, 0) == 1

    def test_defender_dice_bounded_by_armies(self):
        assert CombatEngine.get_defender_dice_count(1, 2) == 1
        assert CombatEngine.get_defender_dice_count(5, 3) == 2


class TestResolveCombat:

    def test_tie_goes_to_defender(self):
        assert CombatEngine.resolve_combat([4], [4]) == (1, 0)

    def test_strict_win_removes_defender(self):
        assert CombatEngine.resolve_combat([5], [4]) == (0, 1)

    def test_three_against_two(self):
        # 6 v 6 tie, 5 v 3 attacker wins; the third attacker die is unused
        assert CombatEngine.resolve_combat([6, 5, 4], [6, 3]) == (1, 1)

    def test_losses_match_compared_pairs(self):
        rng = GameRng("pairs")
        for attacker_count in range(1, 4):
            for defender_count in range(1, 3):
                for _ in range(50):
                    attacker = CombatEngine.roll_dice(attacker_count, rng)
                    defender = CombatEngine.roll_dice(defender_count, rng)
                    losses = CombatEngine.resolve_combat(attacker, defender)
                    assert sum(losses) == min(attacker_count, defender_count)


class TestConductBattle:

    def test_pre_rolled_dice_are_sorted(self):
        result = CombatEngine.conduct_battle(4, 2, 3, 2, GameRng("x"),
                                             attacker_roll=[4, 6, 5], defender_roll=[3, 6])
        assert result.attacker_dice == [6, 5, 4]
        assert result.defender_dice == [6, 3]
        assert (result.attacker_losses, result.defender_losses) == (1, 1)
        assert result.attacker_remaining == 3
        assert result.defender_remaining == 1
        assert not result.conquered

    def test_conquest_when_defender_reaches_zero(self):
        result = CombatEngine.conduct_battle(3, 1, 3, 2, GameRng("x"),
                                             attacker_roll=[6, 6, 6], defender_roll=[1, 1])
        # Dice truncated to what the armies allow
        assert result.attacker_dice == [6, 6]
        assert result.defender_dice == [1]
        assert result.conquered
        assert result.defender_remaining == 0

    def test_no_conquest_with_one_defender_left(self):
        result = CombatEngine.conduct_battle(4, 3, 3, 2, GameRng("x"),
                                             attacker_roll=[6, 6, 6], defender_roll=[1, 1])
        assert result.defender_remaining == 1
        assert not result.conquered

    def test_attacker_never_below_one(self):
        result = CombatEngine.conduct_battle(2, 5, 3, 2, GameRng("x"),
                                             attacker_roll=[1], defender_roll=[6, 6])
        assert result.attacker_losses == 1
        assert result.attacker_remaining == 1

    def test_rolls_are_reproducible_for_a_seed(self):
        first = CombatEngine.conduct_battle(10, 10, 3, 2, GameRng("same"))
        second = CombatEngine.conduct_battle(10, 10, 3, 2, GameRng("same"))
        assert first == second

    def test_dice_in_range(self):
        rng = GameRng("range")
        for _ in range(100):
            dice = CombatEngine.roll_dice(3, rng)
            assert dice == sorted(dice, reverse=True)
            assert all(1 <= d <= 6 for d in dice)

    def test_result_dict_round_trip(self):
        result = BattleResult(1, 1, [6, 5, 4], [6, 3], False, 3, 1)
        assert BattleResult.from_dict(result.to_dict()) == result
