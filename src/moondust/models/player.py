"""Player model — one player's complete economic state.

A PlayerState holds currency, the sub-unit carry, the three upgrade
tracks, prestige multipliers and the player's position on the route.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

MAX_LEVEL = 10
"""Highest level any upgrade track can reach."""


class Track(Enum):
    """The three independent upgrade tracks."""

    COLLECTION = "collection"
    PROBE = "probe"
    ENGINES = "engines"

    @classmethod
    def parse(cls, value: Track | str) -> Track:
        """Resolve a Track member or its string value.

        Raises:
            ValueError: If *value* is not one of the known tracks.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown track: {value!r}")


def _zero_levels() -> dict[Track, int]:
    return {track: 0 for track in Track}


def _base_multipliers() -> dict[Track, float]:
    return {track: 1.0 for track in Track}


@dataclass
class PlayerState:
    """Complete state of a player's run and prestige progress.

    Attributes:
        uid: Player ID assigned by the store.
        nickname: Display name.
        currency: Whole currency units (arbitrary precision).
        fractional_carry: Sub-unit production remainder in ``[0, 1)``.
        levels: Upgrade level per track, ``0..MAX_LEVEL``.
        prestige_multipliers: Permanent per-track multiplier, ``>= 1.0``.
        route_index: Index of the current stage on the route.
        route_progress: Progress toward the next stage in ``[0, 1)``.
        prestige_points: Points earned by completed runs.
    """

    uid: int = 0
    nickname: str = ""

    currency: int = 0
    fractional_carry: float = 0.0
    levels: dict[Track, int] = field(default_factory=_zero_levels)
    prestige_multipliers: dict[Track, float] = field(default_factory=_base_multipliers)
    route_index: int = 0
    route_progress: float = 0.0
    prestige_points: int = 0

    @classmethod
    def new(cls, uid: int, nickname: str = "") -> PlayerState:
        """Create a player with fresh-account defaults."""
        return cls(uid=uid, nickname=nickname)

    def copy(self) -> PlayerState:
        """Return an independent copy (track dicts are duplicated)."""
        return PlayerState(
            uid=self.uid,
            nickname=self.nickname,
            currency=self.currency,
            fractional_carry=self.fractional_carry,
            levels=dict(self.levels),
            prestige_multipliers=dict(self.prestige_multipliers),
            route_index=self.route_index,
            route_progress=self.route_progress,
            prestige_points=self.prestige_points,
        )

    def level(self, track: Track) -> int:
        return self.levels.get(track, 0)

    def prestige_multiplier(self, track: Track) -> float:
        return self.prestige_multipliers.get(track, 1.0)
