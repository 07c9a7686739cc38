"""Game configuration — loads tunable server settings from config/game.yaml.

Provides a single ``GameConfig`` dataclass that is loaded once at startup
and then passed wherever settings are needed.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

log = logging.getLogger(__name__)

DEFAULT_GAME_CONFIG_PATH = "config/game.yaml"


@dataclass
class GameConfig:
    """All tunable server settings.

    Every field has a default so the server can start without the file.
    """

    # -- Timing ------------------------------------------------------
    step_length_ms: float = 1000.0
    autosave_ticks: int = 15

    # -- Economy -----------------------------------------------------
    economy_path: str = "economy.yaml"  # relative to the config directory

    # -- Accounts ----------------------------------------------------
    min_nickname_length: int = 2
    max_nickname_length: int = 20

    # -- Network -----------------------------------------------------
    ws_host: str = "0.0.0.0"
    ws_port: int = 8765
    ws_ping_interval: int = 30
    ws_ping_timeout: int = 10
    ws_max_message_size: int = 1_048_576
    rest_port: int = 3000

    # -- Persistence -------------------------------------------------
    db_path: str = "moondust.db"

    # -- Logging -----------------------------------------------------
    log_level: str = "INFO"


def load_game_config(path: str = DEFAULT_GAME_CONFIG_PATH) -> GameConfig:
    """Load game configuration from a YAML file.

    Missing keys fall back to dataclass defaults.  If the file does not
    exist, a warning is logged and pure defaults are returned.  The
    ``PORT`` environment variable overrides ``rest_port``.
    """
    p = Path(path)
    if not p.exists():
        log.warning("Game config not found at %s — using defaults", p)
        cfg = GameConfig()
    else:
        with p.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        log.info("Loaded game config from %s (%d keys)", p, len(raw))
        cfg = GameConfig(**{
            k: v for k, v in raw.items()
            if k in GameConfig.__dataclass_fields__
        })

    port = os.environ.get("PORT")
    if port:
        cfg.rest_port = int(port)
    if cfg.autosave_ticks < 1:
        raise ValueError(f"autosave_ticks must be >= 1 (got {cfg.autosave_ticks})")
    return cfg
