"""Serialization — PlayerState to JSON-safe wire dicts.

``currency``, ``prestige_points`` and upgrade costs are sent as decimal
strings: JSON numbers are read as doubles by most clients and would lose
precision past 2**53.  Tokens and other credentials are never included.
"""

from __future__ import annotations

from typing import Any

from moondust.engine.rates import compute_rates
from moondust.models.messages import GameStateResponse
from moondust.models.player import PlayerState, Track
from moondust.models.tables import DEFAULT_TABLES, EconomyTables


def serialize_player(state: PlayerState,
                     tables: EconomyTables = DEFAULT_TABLES) -> dict[str, Any]:
    """Full client view of a player, including derived rates."""
    rates = compute_rates(state, tables)
    # A stored index can outlive a route shortened in economy.yaml
    index = min(state.route_index, tables.last_index)
    next_index = index + 1
    next_costs = {}
    for track in Track:
        cost = tables.next_cost(track, state.level(track))
        next_costs[track.value] = str(cost) if cost is not None else None

    return {
        "uid": state.uid,
        "nickname": state.nickname,
        "currency": str(state.currency),
        "fractional_carry": state.fractional_carry,
        "levels": {t.value: state.level(t) for t in Track},
        "prestige_multipliers": {t.value: state.prestige_multiplier(t) for t in Track},
        "prestige_points": str(state.prestige_points),
        "route_index": index,
        "route_progress": state.route_progress,
        "last_index": tables.last_index,
        "stage": tables.route[index].name,
        "next_stage": tables.route[next_index].name if next_index <= tables.last_index else None,
        "rates": {
            "click_yield": rates.click_yield,
            "passive_yield": rates.passive_yield,
            "travel_speed": rates.travel_speed,
        },
        "next_costs": next_costs,
    }


def game_state_message(state: PlayerState,
                       tables: EconomyTables = DEFAULT_TABLES) -> dict[str, Any]:
    return GameStateResponse(player=serialize_player(state, tables)).model_dump()


def serialize_tables(tables: EconomyTables = DEFAULT_TABLES) -> dict[str, Any]:
    """Static economy tables for clients."""
    return {
        "route": [
            {"name": s.name, "distance_from_previous": s.distance_from_previous}
            for s in tables.route
        ],
        "multipliers": {t.value: list(tables.multipliers[t]) for t in Track},
        "costs": {t.value: [str(c) for c in tables.costs[t]] for t in Track},
    }
