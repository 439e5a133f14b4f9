from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

import yaml

from dinodivision.core.errors import PreconditionError
from dinodivision.core.models import UnlockedReward, reward_image_slug
from dinodivision.core.progress import utc_now

logger = logging.getLogger(__name__)

DEFAULT_ROSTER_PATH = Path(__file__).resolve().parent.parent / "data" / "dinosaurs.yaml"


class DinosaurRoster:
    """Fixed, duplicate-free list of dinosaurs handed out in order."""

    def __init__(self, names: Sequence[str], expected_size: Optional[int] = None) -> None:
        cleaned = tuple(str(name).strip() for name in names)
        if not cleaned:
            raise ValueError("Dinosaur roster cannot be empty")
        if any(not name for name in cleaned):
            raise ValueError("Dinosaur roster contains blank names")
        if len({name.lower() for name in cleaned}) != len(cleaned):
            raise ValueError("Dinosaur roster contains duplicate names")
        if expected_size is not None and len(cleaned) != expected_size:
            raise ValueError(f"Dinosaur roster must contain exactly {expected_size} names, got {len(cleaned)}")
        self._names = cleaned

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def __len__(self) -> int:
        return len(self._names)

    def for_reward_number(self, reward_number: int) -> str:
        """Dinosaur for 1-based reward number N; wraps around the roster."""
        if reward_number < 1:
            raise PreconditionError(f"reward_number must be >= 1, got {reward_number}")
        return self._names[(reward_number - 1) % len(self._names)]


def load_roster(path: Optional[Path] = None, expected_size: Optional[int] = None) -> DinosaurRoster:
    roster_path = path or DEFAULT_ROSTER_PATH
    raw = yaml.safe_load(roster_path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or not isinstance(raw.get("roster"), list):
        raise ValueError(f"{roster_path.name}: expected a 'roster' list")
    roster = DinosaurRoster(raw["roster"], expected_size=expected_size)
    logger.info("Loaded %d dinosaurs from %s", len(roster), roster_path)
    return roster


@dataclass(frozen=True)
class RewardMilestoneResolution:
    unlocked_rewards: tuple[UnlockedReward, ...]
    newly_unlocked: tuple[UnlockedReward, ...]
    highest_earned_reward_number: int
    discarded_out_of_order_count: int
    contiguous_prefix_length: int

    @property
    def next_reward_number(self) -> int:
        return len(self.unlocked_rewards) + 1


class RewardMilestoneResolver:
    """Derives the unlocked-reward list from the lifetime solved count.

    Reward N is earned at ``N * interval`` solved problems and is always the
    roster's N-th dinosaur. Stored history is trusted only up to the first
    entry that breaks that law; the rest is dropped and re-derived.
    """

    def __init__(
        self,
        roster: DinosaurRoster,
        interval: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if interval < 1:
            raise PreconditionError("Reward interval must be a positive integer")
        self._roster = roster
        self._interval = interval
        self._clock = clock

    @property
    def interval(self) -> int:
        return self._interval

    def reward_number_for(self, total_problems_solved: int) -> int:
        if total_problems_solved < 0:
            raise PreconditionError(f"total_problems_solved must be non-negative, got {total_problems_solved}")
        return total_problems_solved // self._interval

    def milestone_for(self, reward_number: int) -> int:
        if reward_number < 1:
            raise PreconditionError(f"reward_number must be >= 1, got {reward_number}")
        return reward_number * self._interval

    def build_reward(self, reward_number: int, earned_at: str) -> UnlockedReward:
        dinosaur_name = self._roster.for_reward_number(reward_number)
        return UnlockedReward(
            reward_id=f"reward-{reward_number}",
            dinosaur_name=dinosaur_name,
            image_path=f"/rewards/{reward_image_slug(dinosaur_name)}.png",
            earned_at=earned_at,
            milestone_solved_count=self.milestone_for(reward_number),
        )

    def contiguous_prefix_length(self, rewards: Sequence[UnlockedReward]) -> int:
        length = 0
        for reward in rewards:
            if not isinstance(reward, UnlockedReward):
                break
            expected_number = length + 1
            milestone = reward.milestone_solved_count
            if not isinstance(milestone, int) or isinstance(milestone, bool):
                break
            if milestone != self.milestone_for(expected_number):
                break
            if str(reward.dinosaur_name).strip() != self._roster.for_reward_number(expected_number):
                break
            length += 1
        return length

    def resolve(
        self,
        total_problems_solved: int,
        previous_unlocked_rewards: Sequence[UnlockedReward] = (),
        earned_at: Optional[str] = None,
    ) -> RewardMilestoneResolution:
        highest = self.reward_number_for(total_problems_solved)
        previous = tuple(previous_unlocked_rewards)
        # unearned rewards never survive, even when they follow the law
        prefix = min(self.contiguous_prefix_length(previous), highest)
        discarded = len(previous) - prefix
        if discarded:
            logger.warning(
                "Discarded %d reward(s) that break the unlock order after reward %d",
                discarded,
                prefix,
            )

        unlocked = list(previous[:prefix])
        newly_unlocked: list[UnlockedReward] = []
        if highest > prefix:
            stamp = earned_at if earned_at is not None else self._clock().isoformat()
            for reward_number in range(prefix + 1, highest + 1):
                reward = self.build_reward(reward_number, stamp)
                unlocked.append(reward)
                newly_unlocked.append(reward)
                logger.info(
                    "Unlocked reward %d: %s at %d solved",
                    reward_number,
                    reward.dinosaur_name,
                    reward.milestone_solved_count,
                )

        return RewardMilestoneResolution(
            unlocked_rewards=tuple(unlocked),
            newly_unlocked=tuple(newly_unlocked),
            highest_earned_reward_number=highest,
            discarded_out_of_order_count=discarded,
            contiguous_prefix_length=prefix,
        )
