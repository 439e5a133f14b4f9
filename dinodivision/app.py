"""Wiring for the Dino Division engine: configuration, logging and the game loop."""

import logging
import random
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from dinodivision.config import GameConfig, load_game_config
from dinodivision.core.generator import ProblemGenerator, RandomSource
from dinodivision.core.levels import LevelRepository
from dinodivision.core.progress import utc_now
from dinodivision.core.rewards import RewardMilestoneResolver, load_roster
from dinodivision.core.session import GameLoopOrchestrator
from dinodivision.core.validator import StepValidator


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_orchestrator(
    config: Optional[GameConfig] = None,
    levels_dir: Optional[Path] = None,
    roster_path: Optional[Path] = None,
    random_source: Optional[RandomSource] = None,
    clock: Callable[[], datetime] = utc_now,
) -> GameLoopOrchestrator:
    """Build a game loop from the packaged YAML data (or the given overrides)."""
    config = config or load_game_config()
    table = LevelRepository(levels_dir).table()
    roster = load_roster(roster_path, expected_size=config.expected_roster_size)
    resolver = RewardMilestoneResolver(roster, interval=config.reward_interval, clock=clock)
    generator = ProblemGenerator(table, max_attempts=config.max_generation_attempts)

    logging.info(
        "Division engine ready: %d tiers, %d dinosaurs, reward every %d solved",
        len(table.tiers),
        len(roster),
        config.reward_interval,
    )
    return GameLoopOrchestrator(
        table=table,
        generator=generator,
        validator=StepValidator(),
        resolver=resolver,
        random_source=random_source or random.random,
        remainder_mode=config.remainder_mode,
    )
