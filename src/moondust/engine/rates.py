"""Derived rates — click yield, passive yield and travel speed.

Pure lookups against the economy tables.  Rates are recomputed on every
click and tick because levels and multipliers change between calls.
"""

from __future__ import annotations

from dataclasses import dataclass

from moondust.models.player import PlayerState, Track
from moondust.models.tables import DEFAULT_TABLES, EconomyTables


@dataclass(frozen=True)
class Rates:
    """Live production rates of a player.

    Attributes:
        click_yield: Currency per click.
        passive_yield: Currency per tick.
        travel_speed: Route distance covered per tick.
    """

    click_yield: float
    passive_yield: float
    travel_speed: float


def track_rate(state: PlayerState, track: Track,
               tables: EconomyTables = DEFAULT_TABLES) -> float:
    """Table multiplier for the player's level times the prestige multiplier."""
    return tables.multiplier(track, state.level(track)) * state.prestige_multiplier(track)


def compute_rates(state: PlayerState, tables: EconomyTables = DEFAULT_TABLES) -> Rates:
    """Compute the three live rates for *state*."""
    return Rates(
        click_yield=track_rate(state, Track.COLLECTION, tables),
        passive_yield=track_rate(state, Track.PROBE, tables),
        travel_speed=track_rate(state, Track.ENGINES, tables),
    )
