"""Game-wide settings loaded from ``data/game.yaml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from dinodivision.core.levels import REMAINDER_MODES

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass(frozen=True)
class GameConfig:
    reward_interval: int = 5
    max_generation_attempts: int = 300
    expected_roster_size: Optional[int] = 100
    remainder_mode: Optional[str] = None

    def __post_init__(self) -> None:
        if self.reward_interval < 1:
            raise ValueError("reward_interval must be a positive integer")
        if self.max_generation_attempts < 1:
            raise ValueError("max_generation_attempts must be a positive integer")
        if self.expected_roster_size is not None and self.expected_roster_size < 1:
            raise ValueError("expected_roster_size must be positive when set")
        if self.remainder_mode is not None and self.remainder_mode not in REMAINDER_MODES:
            raise ValueError(f"remainder_mode must be one of {', '.join(REMAINDER_MODES)} or null")


def load_game_config(path: Optional[Path] = None) -> GameConfig:
    config_path = path or DATA_DIR / "game.yaml"
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"{config_path.name}: expected a YAML mapping")
    known = {f.name for f in fields(GameConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"{config_path.name}: unknown keys {', '.join(unknown)}")
    for key in ("reward_interval", "max_generation_attempts"):
        value = raw.get(key)
        if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
            raise ValueError(f"{config_path.name}: '{key}' must be an integer")
    config = GameConfig(**raw)
    logger.info("Loaded game config from %s: %s", config_path, config)
    return config
