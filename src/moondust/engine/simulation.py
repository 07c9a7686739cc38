"""Simulation engine — state transitions for clicks, ticks and purchases.

Every transition is a pure function ``(state, ...) -> ActionResult``:

- on success ``result.state`` is a new PlayerState and ``result.error``
  is None;
- on failure ``result.state`` is the caller's original object, untouched,
  and ``result.error`` names exactly one :class:`SimulationError`.

The input state is never mutated.  No I/O, no logging, no shared state.

Currency and prestige points are Python ints throughout.  The fractional
carry and prestige multipliers are floats cut to 2 decimals after every
change (half-up on the exact binary value); outcomes depend on that cut,
so it must not be replaced by full float precision.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from moondust.engine.rates import compute_rates
from moondust.models.player import MAX_LEVEL, PlayerState, Track
from moondust.models.tables import DEFAULT_TABLES, EconomyTables

PRESTIGE_STEP = 0.1
"""Multiplier gained per prestige point spent."""

REBIRTH_REWARD = 1
"""Prestige points awarded per completed route."""

_CENTS = Decimal("0.01")


class SimulationError(Enum):
    """Reasons an action can be rejected."""

    MAX_LEVEL_REACHED = "max_level_reached"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    ROUTE_NOT_COMPLETE = "route_not_complete"
    INSUFFICIENT_PRESTIGE_POINTS = "insufficient_prestige_points"
    UNKNOWN_TRACK = "unknown_track"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    SimulationError.MAX_LEVEL_REACHED: "Maximum level already reached.",
    SimulationError.INSUFFICIENT_FUNDS: "Not enough Moon Dust.",
    SimulationError.ROUTE_NOT_COMPLETE: "You must reach the final stage before a rebirth.",
    SimulationError.INSUFFICIENT_PRESTIGE_POINTS: "Not enough Moon Shards.",
    SimulationError.UNKNOWN_TRACK: "Unknown upgrade track.",
}


class SimulationFailed(Exception):
    """Raised by :meth:`ActionResult.unwrap` for a rejected action."""

    def __init__(self, error: SimulationError) -> None:
        super().__init__(error.message)
        self.error = error


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one engine call."""

    state: PlayerState
    error: Optional[SimulationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> PlayerState:
        """Return the new state, or raise SimulationFailed."""
        if self.error is not None:
            raise SimulationFailed(self.error)
        return self.state


@dataclass(frozen=True)
class TickResult(ActionResult):
    """Outcome of a tick; ``stage_reached`` is True if the route advanced."""

    stage_reached: bool = False


def _fail(state: PlayerState, error: SimulationError) -> ActionResult:
    return ActionResult(state=state, error=error)


def round_cents(value: float) -> float:
    """Round *value* to 2 decimals, ties away from zero.

    Works on the exact binary value of the float, so ``0.125`` becomes
    ``0.13`` and ``1.005`` (stored as 1.00499…) becomes ``1.0``.
    """
    return float(Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP))


# ===================================================================
# Currency accrual
# ===================================================================

def accrue(state: PlayerState, rate: float) -> PlayerState:
    """Add *rate* units of production to a copy of *state*.

    The whole part goes into ``currency``; the remainder, cut to 2
    decimals, becomes the new carry.  A remainder that rounds up to 1.00
    is paid out as one more whole unit.
    """
    if rate < 0:
        raise ValueError(f"Production rate must be non-negative (got {rate})")
    new = state.copy()
    total = rate + state.fractional_carry
    whole = math.floor(total)
    carry = round_cents(total - whole)
    if carry >= 1.0:
        whole += 1
        carry = 0.0
    new.currency = state.currency + whole
    new.fractional_carry = carry
    return new


# ===================================================================
# Actions
# ===================================================================

def handle_click(state: PlayerState, tables: EconomyTables = DEFAULT_TABLES) -> ActionResult:
    """One click: accrue the click yield."""
    rates = compute_rates(state, tables)
    return ActionResult(state=accrue(state, rates.click_yield))


def handle_tick(state: PlayerState, tables: EconomyTables = DEFAULT_TABLES) -> TickResult:
    """One tick: accrue passive yield, then travel along the route.

    At most one stage is reached per tick.  Progress beyond 1.0 in the
    tick that reaches a stage is discarded, not carried into the next leg.
    """
    rates = compute_rates(state, tables)
    new = accrue(state, rates.passive_yield)

    stage_reached = False
    if new.route_index < tables.last_index:
        leg = tables.route[new.route_index + 1]
        progress = new.route_progress + rates.travel_speed / leg.distance_from_previous
        if progress >= 1.0:
            new.route_index += 1
            new.route_progress = 0.0
            stage_reached = True
        else:
            new.route_progress = progress
    else:
        new.route_progress = 0.0

    return TickResult(state=new, stage_reached=stage_reached)


def handle_upgrade(state: PlayerState, track: Track | str,
                   tables: EconomyTables = DEFAULT_TABLES) -> ActionResult:
    """Buy the next level of *track*."""
    try:
        track = Track.parse(track)
    except ValueError:
        return _fail(state, SimulationError.UNKNOWN_TRACK)

    level = state.level(track)
    if level >= MAX_LEVEL:
        return _fail(state, SimulationError.MAX_LEVEL_REACHED)

    cost = tables.cost(track, level + 1)
    if state.currency < cost:
        return _fail(state, SimulationError.INSUFFICIENT_FUNDS)

    new = state.copy()
    new.currency = state.currency - cost
    new.levels[track] = level + 1
    return ActionResult(state=new)


def handle_rebirth(state: PlayerState, tables: EconomyTables = DEFAULT_TABLES) -> ActionResult:
    """Reset the run for one prestige point.

    Only allowed on the final stage.  Prestige multipliers are kept.
    """
    if state.route_index < tables.last_index:
        return _fail(state, SimulationError.ROUTE_NOT_COMPLETE)

    new = state.copy()
    new.currency = 0
    new.fractional_carry = 0.0
    new.levels = {track: 0 for track in Track}
    new.route_index = 0
    new.route_progress = 0.0
    new.prestige_points = state.prestige_points + REBIRTH_REWARD
    return ActionResult(state=new)


def handle_spend_prestige(state: PlayerState, track: Track | str,
                          tables: EconomyTables = DEFAULT_TABLES) -> ActionResult:
    """Trade one prestige point for +0.1 on a track's prestige multiplier.

    The sum is cut to 2 decimals, so repeated purchases build on the
    previously rounded value.  *tables* is unused; it keeps the signature
    uniform with the other actions.
    """
    try:
        track = Track.parse(track)
    except ValueError:
        return _fail(state, SimulationError.UNKNOWN_TRACK)

    if state.prestige_points <= 0:
        return _fail(state, SimulationError.INSUFFICIENT_PRESTIGE_POINTS)

    new = state.copy()
    new.prestige_points = state.prestige_points - 1
    new.prestige_multipliers[track] = round_cents(
        state.prestige_multiplier(track) + PRESTIGE_STEP
    )
    return ActionResult(state=new)
