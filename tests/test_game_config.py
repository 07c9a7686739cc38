"""Tests for the server settings loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from moondust.loaders.game_config_loader import GameConfig, load_game_config

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


@pytest.fixture(autouse=True)
def _no_port_env(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)


def test_shipped_config_matches_defaults():
    assert load_game_config(str(CONFIG_DIR / "game.yaml")) == GameConfig()


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_game_config(str(tmp_path / "game.yaml"))
    assert cfg == GameConfig()
    assert cfg.step_length_ms == 1000.0
    assert cfg.autosave_ticks == 15


def test_values_override_defaults(tmp_path):
    path = tmp_path / "game.yaml"
    path.write_text("step_length_ms: 250\nws_port: 9000\n", encoding="utf-8")
    cfg = load_game_config(str(path))
    assert cfg.step_length_ms == 250
    assert cfg.ws_port == 9000
    assert cfg.rest_port == 3000


def test_unknown_keys_ignored(tmp_path):
    path = tmp_path / "game.yaml"
    path.write_text("max_players: 3\nautosave_ticks: 5\n", encoding="utf-8")
    cfg = load_game_config(str(path))
    assert cfg.autosave_ticks == 5
    assert not hasattr(cfg, "max_players")


def test_port_env_overrides_rest_port(tmp_path, monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    cfg = load_game_config(str(tmp_path / "game.yaml"))
    assert cfg.rest_port == 8080


def test_autosave_ticks_must_be_positive(tmp_path):
    path = tmp_path / "game.yaml"
    path.write_text("autosave_ticks: 0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="autosave_ticks"):
        load_game_config(str(path))
