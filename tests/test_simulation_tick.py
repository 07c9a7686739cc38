"""Tests for the tick: passive income and route travel."""

from __future__ import annotations

import pytest

from moondust.engine.simulation import handle_tick
from moondust.models.player import PlayerState, Track
from moondust.models.tables import DEFAULT_TABLES

LAST = DEFAULT_TABLES.last_index


def _fast_player() -> PlayerState:
    """Travel speed 400 per tick: faster than the first leg (300)."""
    state = PlayerState.new(1)
    state.levels[Track.ENGINES] = 10              # 4.0
    state.prestige_multipliers[Track.ENGINES] = 100.0
    return state


class TestPassiveIncome:
    def test_no_probe_no_income(self):
        state = PlayerState.new(1)
        for _ in range(50):
            state = handle_tick(state).state
        assert state.currency == 0
        assert state.fractional_carry == 0.0

    def test_no_probe_still_travels(self):
        result = handle_tick(PlayerState.new(1))
        assert result.state.route_progress == pytest.approx(1 / 300)

    def test_probe_level_one(self):
        state = PlayerState.new(1)
        state.levels[Track.PROBE] = 1
        for _ in range(3):
            state = handle_tick(state).state
        assert state.currency == 3

    def test_fractional_passive_income(self):
        state = PlayerState.new(1)
        state.levels[Track.PROBE] = 1
        state.prestige_multipliers[Track.PROBE] = 1.5
        state = handle_tick(state).state
        assert (state.currency, state.fractional_carry) == (1, 0.5)
        state = handle_tick(state).state
        assert (state.currency, state.fractional_carry) == (3, 0.0)


class TestRouteTravel:
    def test_reaching_threshold_advances_one_stage(self):
        state = PlayerState.new(1)
        state.route_progress = 0.999
        result = handle_tick(state)
        assert result.state.route_index == 1
        assert result.state.route_progress == 0.0
        assert result.stage_reached

    def test_progress_below_threshold(self):
        result = handle_tick(PlayerState.new(1))
        assert result.state.route_index == 0
        assert not result.stage_reached

    def test_at_most_one_stage_per_tick(self):
        # 400 / 300 crosses the first leg with overshoot; the overshoot is dropped
        result = handle_tick(_fast_player())
        assert result.state.route_index == 1
        assert result.state.route_progress == 0.0

        # Next leg is 1200 long: a third of the way after one more tick
        result = handle_tick(result.state)
        assert result.state.route_index == 1
        assert result.state.route_progress == pytest.approx(400 / 1200)

    def test_huge_speed_still_one_stage(self):
        state = _fast_player()
        state.prestige_multipliers[Track.ENGINES] = 1_000_000.0
        for expected in range(1, LAST + 1):
            state = handle_tick(state).state
            assert state.route_index == expected

    def test_final_stage_is_noop(self):
        state = _fast_player()
        state.route_index = LAST
        result = handle_tick(state)
        assert result.state.route_index == LAST
        assert result.state.route_progress == 0.0
        assert not result.stage_reached

    def test_route_is_monotonic(self):
        state = _fast_player()
        state.prestige_multipliers[Track.ENGINES] = 500.0
        previous = state.route_index
        for _ in range(500):
            state = handle_tick(state).state
            assert previous <= state.route_index <= previous + 1
            assert 0.0 <= state.route_progress < 1.0
            if state.route_index == LAST:
                assert state.route_progress == 0.0
            previous = state.route_index
        assert state.route_index == LAST

    def test_input_not_mutated(self):
        state = _fast_player()
        handle_tick(state)
        assert state.route_index == 0
        assert state.route_progress == 0.0
