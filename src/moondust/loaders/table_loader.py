"""Table loader — parses economy YAML into EconomyTables.

File format (config/economy.yaml)::

    route:
      - {name: Terra, distance: 0}
      - {name: Lua, distance: 300}
    multipliers:
      collection: [1, 1.5, 2.25, ...]    # levels 0..10
    costs:
      collection: [20, 100, 500, ...]    # levels 1..10

Every section is optional; missing sections keep the built-in values.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import yaml

from moondust.models.player import Track
from moondust.models.tables import (
    DEFAULT_TABLES,
    EconomyTables,
    Stage,
    TableValidationError,
)

log = logging.getLogger(__name__)

DEFAULT_ECONOMY_PATH = "config/economy.yaml"


def _as_number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TableValidationError(f"{where} must be a number, got {value!r}")
    return float(value)


def _as_cost(value: Any, where: str) -> int:
    """A whole number of Moon Dust. 20.0 is accepted, 20.5 is not."""
    number = _as_number(value, where)
    if not number.is_integer():
        raise TableValidationError(f"{where} must be a whole number, got {value!r}")
    return int(number)


def _parse_route(section: Any) -> tuple[Stage, ...]:
    if not isinstance(section, list):
        raise TableValidationError("'route' must be a list of stages")
    stages: list[Stage] = []
    for entry in section:
        if not isinstance(entry, dict) or "name" not in entry:
            raise TableValidationError(f"Invalid route entry: {entry!r}")
        stages.append(Stage(
            name=str(entry["name"]),
            distance_from_previous=_as_number(entry.get("distance", 0),
                                              f"route.{entry['name']}.distance"),
        ))
    return tuple(stages)


def _parse_per_track(section: Any, key: str,
                     cast: Callable[[Any, str], Any]) -> dict[Track, tuple]:
    if not isinstance(section, dict):
        raise TableValidationError(f"'{key}' must map track names to lists")
    parsed: dict[Track, tuple] = {}
    for name, values in section.items():
        try:
            track = Track.parse(name)
        except ValueError:
            raise TableValidationError(f"Unknown track in '{key}': {name!r}")
        if not isinstance(values, list):
            raise TableValidationError(f"'{key}.{name}' must be a list")
        parsed[track] = tuple(cast(v, f"{key}.{name}[{i}]") for i, v in enumerate(values))
    return parsed


def parse_tables(raw: dict[str, Any]) -> EconomyTables:
    """Build EconomyTables from a decoded YAML mapping.

    Per-track entries that are absent fall back to ``DEFAULT_TABLES``.

    Raises:
        TableValidationError: If the result breaks a table invariant.
    """
    route = DEFAULT_TABLES.route
    if "route" in raw:
        route = _parse_route(raw["route"])

    multipliers = dict(DEFAULT_TABLES.multipliers)
    if "multipliers" in raw:
        multipliers.update(_parse_per_track(raw["multipliers"], "multipliers", _as_number))

    costs = dict(DEFAULT_TABLES.costs)
    if "costs" in raw:
        costs.update(_parse_per_track(raw["costs"], "costs", _as_cost))

    return EconomyTables(route=route, multipliers=multipliers, costs=costs)


def load_tables(path: str | Path = DEFAULT_ECONOMY_PATH) -> EconomyTables:
    """Load economy tables from a YAML file.

    If the file does not exist, a warning is logged and the built-in
    tables are returned.
    """
    p = Path(path)
    if not p.exists():
        log.warning("Economy tables not found at %s — using built-in tables", p)
        return DEFAULT_TABLES

    with p.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise TableValidationError(f"{p} must contain a mapping")

    tables = parse_tables(raw)
    log.info("Loaded economy tables from %s (%d stages)", p, len(tables.route))
    return tables
