"""Tests for the economy tables and their YAML loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from moondust.loaders.table_loader import load_tables, parse_tables
from moondust.models.player import MAX_LEVEL, Track
from moondust.models.tables import (
    DEFAULT_TABLES,
    EconomyTables,
    Stage,
    TableValidationError,
)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def _tables(**overrides) -> EconomyTables:
    kwargs = dict(
        route=DEFAULT_TABLES.route,
        multipliers=dict(DEFAULT_TABLES.multipliers),
        costs=dict(DEFAULT_TABLES.costs),
    )
    kwargs.update(overrides)
    return EconomyTables(**kwargs)


class TestDefaultTables:
    def test_route_shape(self):
        assert DEFAULT_TABLES.route[0] == Stage("Terra", 0)
        assert DEFAULT_TABLES.route[-1].name == "Sol"
        assert DEFAULT_TABLES.last_index == 10

    def test_lookups(self):
        assert DEFAULT_TABLES.multiplier(Track.COLLECTION, 0) == 1
        assert DEFAULT_TABLES.multiplier(Track.PROBE, 0) == 0
        assert DEFAULT_TABLES.cost(Track.COLLECTION, 1) == 20
        assert DEFAULT_TABLES.cost(Track.ENGINES, MAX_LEVEL) == 50_000_000

    @pytest.mark.parametrize("level", [0, MAX_LEVEL + 1])
    def test_cost_out_of_range(self, level):
        with pytest.raises(IndexError):
            DEFAULT_TABLES.cost(Track.PROBE, level)

    def test_next_cost(self):
        assert DEFAULT_TABLES.next_cost(Track.PROBE, 0) == 50
        assert DEFAULT_TABLES.next_cost(Track.PROBE, MAX_LEVEL - 1) == 18_000_000
        assert DEFAULT_TABLES.next_cost(Track.PROBE, MAX_LEVEL) is None


class TestValidation:
    def test_empty_route(self):
        with pytest.raises(TableValidationError, match="at least one stage"):
            _tables(route=())

    def test_single_stage_route_is_valid(self):
        tables = _tables(route=(Stage("Home", 0),))
        assert tables.last_index == 0

    def test_start_must_have_zero_distance(self):
        with pytest.raises(TableValidationError, match="distance 0"):
            _tables(route=(Stage("Home", 5), Stage("Away", 10)))

    def test_later_stage_needs_positive_distance(self):
        with pytest.raises(TableValidationError, match="positive distance"):
            _tables(route=(Stage("Home", 0), Stage("Away", 0)))

    def test_wrong_multiplier_count(self):
        multipliers = dict(DEFAULT_TABLES.multipliers)
        multipliers[Track.PROBE] = (0, 1, 2)
        with pytest.raises(TableValidationError, match="multipliers"):
            _tables(multipliers=multipliers)

    def test_decreasing_multipliers(self):
        multipliers = dict(DEFAULT_TABLES.multipliers)
        multipliers[Track.ENGINES] = (1.0,) * 10 + (0.5,)
        with pytest.raises(TableValidationError, match="non-decreasing"):
            _tables(multipliers=multipliers)

    def test_missing_track_costs(self):
        costs = dict(DEFAULT_TABLES.costs)
        del costs[Track.COLLECTION]
        with pytest.raises(TableValidationError, match="costs"):
            _tables(costs=costs)

    def test_costs_must_increase(self):
        costs = dict(DEFAULT_TABLES.costs)
        costs[Track.COLLECTION] = (20, 20, 500, 2_500, 10_000,
                                   50_000, 200_000, 800_000, 3_000_000, 12_000_000)
        with pytest.raises(TableValidationError, match="strictly increasing"):
            _tables(costs=costs)

    def test_costs_must_be_integers(self):
        costs = dict(DEFAULT_TABLES.costs)
        costs[Track.PROBE] = (50.5, 250, 1_200, 6_000, 20_000,
                              80_000, 300_000, 1_200_000, 4_500_000, 18_000_000)
        with pytest.raises(TableValidationError, match="positive integers"):
            _tables(costs=costs)


class TestLoader:
    def test_shipped_file_matches_builtin(self):
        assert load_tables(CONFIG_DIR / "economy.yaml") == DEFAULT_TABLES

    def test_missing_file_uses_builtin(self, tmp_path):
        assert load_tables(tmp_path / "nope.yaml") is DEFAULT_TABLES

    def test_empty_file_uses_builtin_values(self, tmp_path):
        path = tmp_path / "economy.yaml"
        path.write_text("", encoding="utf-8")
        assert load_tables(path) == DEFAULT_TABLES

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "economy.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(TableValidationError, match="mapping"):
            load_tables(path)

    def test_partial_override(self):
        tables = parse_tables({
            "route": [{"name": "A", "distance": 0}, {"name": "B", "distance": 50}],
            "costs": {"probe": [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]},
        })
        assert [s.name for s in tables.route] == ["A", "B"]
        assert tables.cost(Track.PROBE, 3) == 3
        assert tables.costs[Track.COLLECTION] == DEFAULT_TABLES.costs[Track.COLLECTION]
        assert tables.multipliers == DEFAULT_TABLES.multipliers

    def test_unknown_track_name(self):
        with pytest.raises(TableValidationError, match="Unknown track"):
            parse_tables({"costs": {"warp": [1] * 10}})

    def test_invalid_route_entry(self):
        with pytest.raises(TableValidationError, match="route entry"):
            parse_tables({"route": [{"distance": 0}]})

    def test_loaded_tables_are_validated(self):
        with pytest.raises(TableValidationError):
            parse_tables({"route": [{"name": "A", "distance": 0},
                                    {"name": "B", "distance": -1}]})

    def test_fractional_cost_is_rejected(self):
        with pytest.raises(TableValidationError, match=r"costs.collection\[0\] must be a whole number"):
            parse_tables({"costs": {"collection": [20.5, 100, 500, 2_000, 8_000,
                                                   30_000, 120_000, 500_000, 2_000_000, 8_000_000]}})

    def test_whole_float_cost_is_accepted(self):
        tables = parse_tables({"costs": {"collection": [20.0, 100, 500, 2_000, 8_000,
                                                        30_000, 120_000, 500_000, 2_000_000, 8_000_000]}})
        assert tables.cost(Track.COLLECTION, 1) == 20
        assert isinstance(tables.cost(Track.COLLECTION, 1), int)

    @pytest.mark.parametrize("raw, where", [
        ({"costs": {"collection": ["cheap"] * 10}}, "costs.collection"),
        ({"multipliers": {"collection": [1, "x"] + [2] * 9}}, "multipliers.collection"),
        ({"route": [{"name": "A", "distance": 0}, {"name": "B", "distance": "far"}]}, "route.B"),
    ])
    def test_non_numeric_entry(self, raw, where):
        with pytest.raises(TableValidationError, match=f"{where}.* must be a number"):
            parse_tables(raw)
