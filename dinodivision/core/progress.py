from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from dinodivision.core.errors import PreconditionError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionProgress:
    session_id: str
    started_at: str
    solved_problems: int = 0
    attempted_problems: int = 0


@dataclass(frozen=True)
class LifetimeProgress:
    total_problems_solved: int = 0
    total_problems_attempted: int = 0
    current_difficulty_level: int = 1
    rewards_unlocked: int = 0


@dataclass(frozen=True)
class PlayerProgressState:
    """Session and lifetime counters. Each ``record_*`` call returns a new state;
    only the game loop decides when to call them."""

    session: SessionProgress
    lifetime: LifetimeProgress

    def validate(self) -> None:
        counters = {
            "session.solved_problems": self.session.solved_problems,
            "session.attempted_problems": self.session.attempted_problems,
            "lifetime.total_problems_solved": self.lifetime.total_problems_solved,
            "lifetime.total_problems_attempted": self.lifetime.total_problems_attempted,
            "lifetime.rewards_unlocked": self.lifetime.rewards_unlocked,
        }
        for name, value in counters.items():
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise PreconditionError(f"progress.{name} must be a non-negative integer, got {value!r}")
        if self.lifetime.current_difficulty_level < 1:
            raise PreconditionError("progress.lifetime.current_difficulty_level must be >= 1")
        if self.session.attempted_problems < self.session.solved_problems:
            raise PreconditionError("progress.session.attempted_problems cannot be less than solved_problems")
        if self.lifetime.total_problems_attempted < self.lifetime.total_problems_solved:
            raise PreconditionError(
                "progress.lifetime.total_problems_attempted cannot be less than total_problems_solved"
            )

    def record_attempt(self, difficulty_level: int) -> PlayerProgressState:
        return PlayerProgressState(
            session=replace(self.session, attempted_problems=self.session.attempted_problems + 1),
            lifetime=replace(
                self.lifetime,
                total_problems_attempted=self.lifetime.total_problems_attempted + 1,
                current_difficulty_level=difficulty_level,
            ),
        )

    def record_solve(self, difficulty_level: int) -> PlayerProgressState:
        return PlayerProgressState(
            session=replace(self.session, solved_problems=self.session.solved_problems + 1),
            lifetime=replace(
                self.lifetime,
                total_problems_solved=self.lifetime.total_problems_solved + 1,
                current_difficulty_level=difficulty_level,
            ),
        )

    def with_rewards_unlocked(self, count: int) -> PlayerProgressState:
        if count == self.lifetime.rewards_unlocked:
            return self
        return replace(self, lifetime=replace(self.lifetime, rewards_unlocked=count))


def start_session(
    lifetime: Optional[LifetimeProgress] = None,
    clock: Callable[[], datetime] = utc_now,
    session_id: Optional[str] = None,
) -> PlayerProgressState:
    """Open a fresh session on top of existing (or empty) lifetime counters."""
    session = SessionProgress(
        session_id=session_id or f"session-{uuid.uuid4().hex[:12]}",
        started_at=clock().isoformat(),
    )
    state = PlayerProgressState(session=session, lifetime=lifetime or LifetimeProgress())
    state.validate()
    logger.info(
        "Started session %s (lifetime solved: %d)",
        session.session_id,
        state.lifetime.total_problems_solved,
    )
    return state
