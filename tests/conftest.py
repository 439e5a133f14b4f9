"""Shared fixtures: a fixed tier table, a short roster and deterministic sources."""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Callable, Iterable

import pytest

from dinodivision.core.generator import ProblemGenerator
from dinodivision.core.levels import DifficultyTable, DifficultyTier
from dinodivision.core.rewards import DinosaurRoster, RewardMilestoneResolver
from dinodivision.core.session import GameLoopOrchestrator
from dinodivision.core.validator import StepValidator

FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def scripted(values: Iterable[float]) -> Callable[[], float]:
    """Random source that replays ``values`` in order."""
    it = iter(values)
    return lambda: next(it)


@pytest.fixture()
def tiers() -> list[DifficultyTier]:
    return [
        DifficultyTier(1, "2-digit ÷ 1-digit", 0, (2, 2), (1, 1)),
        DifficultyTier(2, "2-3 digit ÷ 1-digit", 5, (2, 3), (1, 1)),
        DifficultyTier(3, "3-4 digit ÷ 1-2 digit", 12, (3, 4), (1, 2)),
        DifficultyTier(4, "4-digit ÷ 2-digit", 20, (4, 4), (2, 2)),
        DifficultyTier(5, "4-5 digit ÷ 2-3 digit", 35, (4, 5), (2, 3)),
    ]


@pytest.fixture()
def table(tiers: list[DifficultyTier]) -> DifficultyTable:
    return DifficultyTable(tiers)


@pytest.fixture()
def roster() -> DinosaurRoster:
    return DinosaurRoster(["Tyrannosaurus Rex", "Velociraptor", "Triceratops"])


@pytest.fixture()
def resolver(roster: DinosaurRoster) -> RewardMilestoneResolver:
    return RewardMilestoneResolver(roster, interval=5, clock=fixed_clock)


@pytest.fixture()
def rng() -> Callable[[], float]:
    return random.Random(20260101).random


@pytest.fixture()
def orchestrator(
    table: DifficultyTable,
    resolver: RewardMilestoneResolver,
    rng: Callable[[], float],
) -> GameLoopOrchestrator:
    return GameLoopOrchestrator(
        table=table,
        generator=ProblemGenerator(table),
        validator=StepValidator(),
        resolver=resolver,
        random_source=rng,
    )
