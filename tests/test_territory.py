"""Tests for map loading and the territory graph."""

from conquest.game.territory import (
    Continent, MapDefinition, NEUTRAL, Territory, TerritoryManager, get_map_by_id, list_maps
)
from conquest.game.victory import check_win_condition
from conquest.game.player import Player


def tiny_map():
    # "c" lists "a" but "a" does not list "c"
    return MapDefinition(
        id="tiny",
        name="Tiny",
        continents=(Continent("north", "North", 2), Continent("south", "South", 1)),
        territories=(
            Territory("a", "A", "north", ("b",)),
            Territory("b", "B", "north", ("a",)),
            Territory("c", "C", "south", ("a",)),
        ),
    )


def test_bundled_maps():
    assert list_maps() == ["europe", "turkey", "world"]
    assert len(get_map_by_id("world").territories) == 42
    assert len(get_map_by_id("turkey").territories) == 81
    assert get_map_by_id("atlantis") is None


def test_neighbors_and_continents_exist():
    for map_id in list_maps():
        definition = get_map_by_id(map_id)
        ids = set(definition.territory_ids())
        continents = {c.id for c in definition.continents}
        for territory in definition.territories:
            assert territory.continent in continents
            assert set(territory.neighbors) <= ids


def test_adjacency_is_symmetric():
    manager = TerritoryManager(tiny_map())
    assert manager.are_adjacent("c", "a")
    assert manager.are_adjacent("a", "c")
    assert sorted(manager.get_neighbors("a")) == ["b", "c"]
    assert not manager.are_adjacent("b", "c")
    assert not manager.are_adjacent("a", "a")
    assert not manager.are_adjacent("a", "zzz")


def test_starts_neutral():
    manager = TerritoryManager(tiny_map())
    assert all(t.owner == NEUTRAL and t.army_count == 0 for t in manager.get_all_territories())
    assert manager.owner_ids() == {NEUTRAL}


def test_continent_bonuses():
    manager = TerritoryManager(tiny_map())
    manager.get_territory("a").owner = 0
    manager.get_territory("b").owner = 0
    manager.get_territory("c").owner = 1
    assert manager.get_player_continent_bonuses(0) == {"north": 2}
    assert manager.get_player_continent_bonuses(1) == {"south": 1}


class TestWinDetection:

    def players(self):
        return [Player(0, "Ann", "#fff"), Player(1, "Bob", "#000")]

    def test_single_owner_wins(self):
        manager = TerritoryManager(tiny_map())
        for territory in manager.get_all_territories():
            territory.owner = 1
        players = self.players()
        assert check_win_condition(manager, players) == 1
        assert [p.alive for p in players] == [False, True]

    def test_neutral_board_has_no_winner(self):
        manager = TerritoryManager(tiny_map())
        assert check_win_condition(manager, self.players()) is None

    def test_alive_flags_follow_ownership(self):
        manager = TerritoryManager(tiny_map())
        manager.get_territory("a").owner = 0
        manager.get_territory("b").owner = 0
        manager.get_territory("c").owner = 1
        players = self.players()
        players[1].alive = False
        assert check_win_condition(manager, players) is None
        assert [p.alive for p in players] == [True, True]
