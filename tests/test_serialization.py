"""Tests for the client wire format."""

from __future__ import annotations

import json

from moondust.models.player import MAX_LEVEL, PlayerState, Track
from moondust.models.tables import DEFAULT_TABLES
from moondust.network.serialization import game_state_message, serialize_player


def test_big_values_are_strings():
    state = PlayerState.new(1, "luna")
    state.currency = 10 ** 30
    state.prestige_points = 2 ** 60
    data = serialize_player(state)
    assert data["currency"] == "1" + "0" * 30
    assert data["prestige_points"] == str(2 ** 60)
    json.dumps(data)


def test_final_stage_and_max_levels():
    state = PlayerState.new(1)
    state.route_index = DEFAULT_TABLES.last_index
    state.levels = {t: MAX_LEVEL for t in Track}
    data = serialize_player(state)
    assert data["stage"] == "Sol"
    assert data["next_stage"] is None
    assert data["next_costs"] == {"collection": None, "probe": None, "engines": None}
    assert data["rates"]["passive_yield"] == 100


def test_index_past_route_end_shows_last_stage():
    state = PlayerState.new(1)
    state.route_index = 15
    data = serialize_player(state)
    assert data["route_index"] == DEFAULT_TABLES.last_index
    assert data["stage"] == "Sol"
    assert data["next_stage"] is None


def test_game_state_envelope():
    msg = game_state_message(PlayerState.new(3, "x"))
    assert msg["type"] == "game_state"
    assert msg["player"]["uid"] == 3
    assert msg["player"]["last_index"] == 10
