from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from dinodivision.core.errors import InvalidIndexError, PreconditionError
from dinodivision.core.generator import ProblemGenerator, RandomSource
from dinodivision.core.levels import DifficultyTable
from dinodivision.core.models import (
    ActiveInputTarget,
    DivisionProblem,
    LongDivisionStep,
    UnlockedReward,
    input_target_for,
)
from dinodivision.core.progress import PlayerProgressState, start_session, utc_now
from dinodivision.core.rewards import RewardMilestoneResolver
from dinodivision.core.solver import LongDivisionSolution, solve
from dinodivision.core.validator import StepValidationResult, StepValidator

logger = logging.getLogger(__name__)


class GamePhase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    STEPPING = "stepping"
    COMPLETE = "complete"


@dataclass(frozen=True)
class GameLoopState:
    """Snapshot of the game loop. Renderers and savers only read it."""

    active_problem: Optional[DivisionProblem]
    steps: tuple[LongDivisionStep, ...]
    active_step_index: Optional[int]
    active_input_target: Optional[ActiveInputTarget]
    progress: PlayerProgressState
    unlocked_rewards: tuple[UnlockedReward, ...] = ()

    @property
    def phase(self) -> GamePhase:
        if self.active_problem is None:
            return GamePhase.IDLE
        if self.active_step_index is None:
            return GamePhase.COMPLETE
        if self.active_step_index == 0:
            return GamePhase.ACTIVE
        return GamePhase.STEPPING

    @property
    def current_step(self) -> Optional[LongDivisionStep]:
        if self.active_step_index is None:
            return None
        return self.steps[self.active_step_index]


@dataclass(frozen=True)
class DivisionProblemCompletionSummary:
    problem_id: str
    solved_problems_this_session: int
    total_problems_solved: int


@dataclass(frozen=True)
class StartProblemResult:
    state: GameLoopState
    problem: DivisionProblem


@dataclass(frozen=True)
class LiveStepInputResult:
    state: GameLoopState
    validation: StepValidationResult
    completed_problem: Optional[DivisionProblemCompletionSummary] = None
    newly_unlocked_rewards: tuple[UnlockedReward, ...] = ()
    chained_to_next_problem: bool = False
    next_problem: Optional[DivisionProblem] = None


class GameLoopOrchestrator:
    """Runs the problem lifecycle: start, step through, complete, chain.

    Idle -> Active -> Stepping -> Complete -> Active ... with no terminal
    state. Completion bumps the solved counters, resolves rewards against the
    new lifetime total and only then generates the next problem. Calls are
    expected to arrive one at a time; nothing here locks.
    """

    def __init__(
        self,
        table: DifficultyTable,
        generator: ProblemGenerator,
        validator: StepValidator,
        resolver: RewardMilestoneResolver,
        random_source: RandomSource = random.random,
        remainder_mode: Optional[str] = None,
        solver: Callable[[DivisionProblem], LongDivisionSolution] = solve,
    ) -> None:
        self._table = table
        self._generator = generator
        self._validator = validator
        self._resolver = resolver
        self._random = random_source
        self._remainder_mode = remainder_mode
        self._solve = solver

    def new_state(
        self,
        progress: Optional[PlayerProgressState] = None,
        unlocked_rewards: Sequence[UnlockedReward] = (),
        clock: Callable[[], datetime] = utc_now,
    ) -> GameLoopState:
        """Idle state for a player, with reward history checked against the law."""
        progress = progress or start_session(clock=clock)
        progress.validate()
        resolution = self._resolver.resolve(
            progress.lifetime.total_problems_solved,
            unlocked_rewards,
        )
        level = self._table.level_for_solved_count(progress.lifetime.total_problems_solved)
        progress = replace(
            progress,
            lifetime=replace(
                progress.lifetime,
                current_difficulty_level=level,
                rewards_unlocked=len(resolution.unlocked_rewards),
            ),
        )
        return GameLoopState(
            active_problem=None,
            steps=(),
            active_step_index=None,
            active_input_target=None,
            progress=progress,
            unlocked_rewards=resolution.unlocked_rewards,
        )

    def start_next_problem(self, state: GameLoopState) -> StartProblemResult:
        self._check_state(state)
        if state.phase not in (GamePhase.IDLE, GamePhase.COMPLETE):
            raise PreconditionError(f"Cannot start a new problem while one is {state.phase.value}")
        return self._start(state)

    def apply_live_step_input(self, state: GameLoopState, submitted_text: str) -> LiveStepInputResult:
        self._check_state(state)
        if state.phase not in (GamePhase.ACTIVE, GamePhase.STEPPING):
            raise PreconditionError(f"Step input needs an active problem, game is {state.phase.value}")
        problem = state.active_problem
        validation = self._validator.validate(state.steps, state.active_step_index, submitted_text)

        if not validation.did_advance:
            return LiveStepInputResult(state=state, validation=validation)

        if not validation.is_problem_complete:
            focus = validation.focus_step_index
            advanced = replace(
                state,
                active_step_index=focus,
                active_input_target=input_target_for(state.steps, focus),
            )
            return LiveStepInputResult(state=advanced, validation=validation)

        solved_total = state.progress.lifetime.total_problems_solved + 1
        progress = state.progress.record_solve(self._table.level_for_solved_count(solved_total))
        resolution = self._resolver.resolve(solved_total, state.unlocked_rewards)
        progress = progress.with_rewards_unlocked(len(resolution.unlocked_rewards))
        summary = DivisionProblemCompletionSummary(
            problem_id=problem.id,
            solved_problems_this_session=progress.session.solved_problems,
            total_problems_solved=progress.lifetime.total_problems_solved,
        )
        logger.info(
            "Solved %s: %d / %d = %d r %d (session %d, lifetime %d)",
            problem.id,
            problem.dividend,
            problem.divisor,
            problem.quotient,
            problem.remainder,
            summary.solved_problems_this_session,
            summary.total_problems_solved,
        )

        completed = replace(
            state,
            active_step_index=None,
            active_input_target=None,
            progress=progress,
            unlocked_rewards=resolution.unlocked_rewards,
        )
        chained = self._start(completed)
        return LiveStepInputResult(
            state=chained.state,
            validation=validation,
            completed_problem=summary,
            newly_unlocked_rewards=resolution.newly_unlocked,
            chained_to_next_problem=True,
            next_problem=chained.problem,
        )

    def _start(self, state: GameLoopState) -> StartProblemResult:
        tier = self._table.tier_for_solved_count(state.progress.lifetime.total_problems_solved)
        problem = self._generator.generate(
            tier.level,
            self._remainder_mode or tier.remainder_mode,
            self._random,
        )
        solution = self._solve(problem)
        started = GameLoopState(
            active_problem=problem,
            steps=solution.steps,
            active_step_index=0,
            active_input_target=input_target_for(solution.steps, 0),
            progress=state.progress.record_attempt(tier.level),
            unlocked_rewards=state.unlocked_rewards,
        )
        logger.info(
            "Started %s: %d / %d at level %d (%d steps)",
            problem.id,
            problem.dividend,
            problem.divisor,
            tier.level,
            len(solution.steps),
        )
        return StartProblemResult(state=started, problem=problem)

    @staticmethod
    def _check_state(state: GameLoopState) -> None:
        state.progress.validate()
        if state.active_problem is None:
            if state.steps:
                raise PreconditionError("steps must be empty when there is no active problem")
            return
        if not state.steps:
            raise PreconditionError("steps must be populated while a problem is active")
        index = state.active_step_index
        if index is not None and not 0 <= index < len(state.steps):
            raise InvalidIndexError(f"active_step_index {index} does not reference an existing step")
