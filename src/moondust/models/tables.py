"""Economy tables — route stages, upgrade multipliers and upgrade costs.

Immutable data shared by every player.  The built-in values live in
``DEFAULT_TABLES``; ``loaders.table_loader`` can replace them from
``config/economy.yaml``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from moondust.models.player import MAX_LEVEL, Track


class TableValidationError(ValueError):
    """Raised when economy tables break their structural invariants."""


@dataclass(frozen=True)
class Stage:
    """One stop on the route.

    Attributes:
        name: Display name of the stage.
        distance_from_previous: Travel distance from the previous stage.
            Zero for the starting stage, positive for every other one.
    """

    name: str
    distance_from_previous: float = 0.0


@dataclass(frozen=True)
class EconomyTables:
    """Complete static economy data.

    Attributes:
        route: Ordered stages, starting stage first.
        multipliers: Per track, the multiplier for levels ``0..MAX_LEVEL``.
        costs: Per track, the cost to reach levels ``1..MAX_LEVEL``
            (index 0 is the cost of level 1).
    """

    route: tuple[Stage, ...] = ()
    multipliers: Mapping[Track, tuple[float, ...]] = field(default_factory=dict)
    costs: Mapping[Track, tuple[int, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_tables(self)

    @property
    def last_index(self) -> int:
        """Index of the terminal stage."""
        return len(self.route) - 1

    def multiplier(self, track: Track, level: int) -> float:
        return self.multipliers[track][level]

    def cost(self, track: Track, level: int) -> int:
        """Cost to reach *level* (1-based) on *track* from the level below."""
        if not 1 <= level <= MAX_LEVEL:
            raise IndexError(f"No cost for level {level} (valid: 1..{MAX_LEVEL})")
        return self.costs[track][level - 1]

    def next_cost(self, track: Track, current_level: int) -> int | None:
        """Cost of the next level, or None when *current_level* is the max."""
        if current_level >= MAX_LEVEL:
            return None
        return self.cost(track, current_level + 1)


def validate_tables(tables: EconomyTables) -> None:
    """Check the structural invariants of *tables*.

    Raises:
        TableValidationError: On the first violated invariant.
    """
    if not tables.route:
        raise TableValidationError("Route must contain at least one stage")
    if tables.route[0].distance_from_previous != 0:
        raise TableValidationError(
            f"Starting stage {tables.route[0].name!r} must have distance 0"
        )
    for stage in tables.route[1:]:
        if stage.distance_from_previous <= 0:
            raise TableValidationError(
                f"Stage {stage.name!r} must have a positive distance "
                f"(got {stage.distance_from_previous})"
            )

    for track in Track:
        values = tables.multipliers.get(track)
        if values is None or len(values) != MAX_LEVEL + 1:
            raise TableValidationError(
                f"Track {track.value!r} needs {MAX_LEVEL + 1} multipliers"
            )
        if any(v < 0 for v in values):
            raise TableValidationError(f"Track {track.value!r} has a negative multiplier")
        if any(b < a for a, b in zip(values, values[1:])):
            raise TableValidationError(
                f"Multipliers of track {track.value!r} must be non-decreasing"
            )

        costs = tables.costs.get(track)
        if costs is None or len(costs) != MAX_LEVEL:
            raise TableValidationError(f"Track {track.value!r} needs {MAX_LEVEL} costs")
        if any(not isinstance(c, int) or isinstance(c, bool) or c <= 0 for c in costs):
            raise TableValidationError(
                f"Costs of track {track.value!r} must be positive integers"
            )
        if any(b <= a for a, b in zip(costs, costs[1:])):
            raise TableValidationError(
                f"Costs of track {track.value!r} must be strictly increasing"
            )


DEFAULT_TABLES = EconomyTables(
    route=(
        Stage("Terra", 0),
        Stage("Lua", 300),
        Stage("Vênus", 1200),
        Stage("Mercúrio", 1800),
        Stage("Marte", 2700),
        Stage("Júpiter", 6000),
        Stage("Saturno", 9000),
        Stage("Urano", 12000),
        Stage("Netuno", 15000),
        Stage("Plutão", 18000),
        Stage("Sol", 30000),
    ),
    multipliers={
        Track.COLLECTION: (1, 1.5, 2.25, 3.5, 5.0, 7.5, 11.5, 17.0, 25.5, 38.5, 60.0),
        Track.PROBE: (0, 1, 2, 4, 8, 12, 18, 27, 40, 60, 100),
        Track.ENGINES: (1.0, 1.2, 1.4, 1.6, 1.8, 2.0, 2.4, 2.8, 3.2, 3.6, 4.0),
    },
    costs={
        Track.COLLECTION: (
            20, 100, 500, 2_500, 10_000,
            50_000, 200_000, 800_000, 3_000_000, 12_000_000,
        ),
        Track.PROBE: (
            50, 250, 1_200, 6_000, 20_000,
            80_000, 300_000, 1_200_000, 4_500_000, 18_000_000,
        ),
        Track.ENGINES: (
            100, 500, 2_500, 12_000, 50_000,
            200_000, 800_000, 3_000_000, 12_000_000, 50_000_000,
        ),
    },
)
