from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml

from dinodivision.core.errors import PreconditionError

logger = logging.getLogger(__name__)

REMAINDER_MODES = ("allow", "require", "forbid")


@dataclass(frozen=True)
class DifficultyTier:
    level: int
    title: str
    min_solved: int
    dividend_digits: Tuple[int, int]
    divisor_digits: Tuple[int, int]
    remainder_mode: str = "allow"


class DifficultyTable:
    """Monotonic lifetime-solved thresholds mapped to difficulty tiers."""

    def __init__(self, tiers: Sequence[DifficultyTier]) -> None:
        self._tiers: Tuple[DifficultyTier, ...] = tuple(tiers)
        self._validate()

    def _validate(self) -> None:
        if not self._tiers:
            raise ValueError("Difficulty table needs at least one tier")
        if self._tiers[0].min_solved != 0:
            raise ValueError("First difficulty tier must start at min_solved 0")
        for index, tier in enumerate(self._tiers):
            if tier.level != index + 1:
                raise ValueError(f"Tier levels must be 1..n in order, got {tier.level} at position {index + 1}")
            if index and tier.min_solved <= self._tiers[index - 1].min_solved:
                raise ValueError(f"Tier {tier.level}: min_solved must increase strictly")
            for name, (low, high) in (("dividend_digits", tier.dividend_digits), ("divisor_digits", tier.divisor_digits)):
                if low < 1 or high < low:
                    raise ValueError(f"Tier {tier.level}: invalid {name} range [{low}, {high}]")
            if tier.remainder_mode not in REMAINDER_MODES:
                raise ValueError(f"Tier {tier.level}: unknown remainder_mode {tier.remainder_mode!r}")

    @property
    def tiers(self) -> Tuple[DifficultyTier, ...]:
        return self._tiers

    def tier(self, level: int) -> DifficultyTier:
        if not isinstance(level, int) or not 1 <= level <= len(self._tiers):
            raise PreconditionError(f"Unknown difficulty level {level!r}; expected 1..{len(self._tiers)}")
        return self._tiers[level - 1]

    def level_for_solved_count(self, total_problems_solved: int) -> int:
        return self.tier_for_solved_count(total_problems_solved).level

    def tier_for_solved_count(self, total_problems_solved: int) -> DifficultyTier:
        if total_problems_solved < 0:
            raise PreconditionError(f"total_problems_solved must be non-negative, got {total_problems_solved}")
        resolved = self._tiers[0]
        for tier in self._tiers:
            if total_problems_solved < tier.min_solved:
                break
            resolved = tier
        return resolved

    def next_level(self, total_problems_solved: int) -> Optional[int]:
        """Level the player is working towards, or None at the top tier."""
        current = self.level_for_solved_count(total_problems_solved)
        if current >= len(self._tiers):
            return None
        return current + 1

    def problems_until_next_tier(self, total_problems_solved: int) -> Optional[int]:
        upcoming = self.next_level(total_problems_solved)
        if upcoming is None:
            return None
        return self._tiers[upcoming - 1].min_solved - total_problems_solved


def _digit_range(raw: object, file_name: str, key: str) -> Tuple[int, int]:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return (raw, raw)
    if (
        isinstance(raw, list)
        and len(raw) == 2
        and all(isinstance(item, int) and not isinstance(item, bool) for item in raw)
    ):
        return (raw[0], raw[1])
    raise ValueError(f"{file_name}: '{key}' must be an integer or a [min, max] pair")


class LevelRepository:
    """Loads difficulty tiers from ``data/levels/level<N>.yaml``."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path(__file__).resolve().parent.parent / "data" / "levels"
        self._levels = self._load_levels()

    def all(self) -> List[DifficultyTier]:
        return list(self._levels.values())

    def get(self, level: int) -> DifficultyTier:
        return self._levels[level]

    def table(self) -> DifficultyTable:
        return DifficultyTable(self.all())

    def _load_levels(self) -> Dict[int, DifficultyTier]:
        base_dir = self._base_dir
        if not base_dir.exists():
            raise FileNotFoundError(f"Levels directory not found: {base_dir}")

        levels: Dict[int, DifficultyTier] = {}

        def _sort_key(p: Path) -> tuple[int, str]:
            m = re.match(r"^level(\d+)$", p.stem)
            if m:
                return (int(m.group(1)), p.stem)
            return (10**9, p.stem)

        for level_path in sorted(base_dir.glob("level*.yaml"), key=_sort_key):
            m = re.match(r"^level(\d+)$", level_path.stem)
            if not m:
                raise ValueError(f"{level_path.name}: file name must be level<N>.yaml")
            raw = yaml.safe_load(level_path.read_text(encoding="utf-8"))
            if not raw or not isinstance(raw, dict):
                raise ValueError(f"{level_path.name}: expected YAML mapping with 'title' and digit ranges")
            title = raw.get("title")
            if not title or not isinstance(title, str):
                raise ValueError(f"{level_path.name}: missing or invalid 'title'")
            min_solved = raw.get("min_solved")
            if not isinstance(min_solved, int) or isinstance(min_solved, bool) or min_solved < 0:
                raise ValueError(f"{level_path.name}: 'min_solved' must be a non-negative integer")
            for key in ("dividend_digits", "divisor_digits"):
                if key not in raw:
                    raise ValueError(f"{level_path.name}: missing '{key}'")
            remainder_mode = raw.get("remainder_mode", "allow")
            if remainder_mode not in REMAINDER_MODES:
                raise ValueError(f"{level_path.name}: 'remainder_mode' must be one of {', '.join(REMAINDER_MODES)}")
            level = int(m.group(1))
            levels[level] = DifficultyTier(
                level=level,
                title=title.strip(),
                min_solved=min_solved,
                dividend_digits=_digit_range(raw["dividend_digits"], level_path.name, "dividend_digits"),
                divisor_digits=_digit_range(raw["divisor_digits"], level_path.name, "divisor_digits"),
                remainder_mode=remainder_mode,
            )

        if not levels:
            raise ValueError(f"No level files (level*.yaml) found in {base_dir}")
        logger.info("Loaded %d difficulty tiers from %s", len(levels), base_dir)
        return levels
