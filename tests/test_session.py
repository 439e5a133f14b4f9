"""Tests for dinodivision.core.session – the problem lifecycle game loop."""

from __future__ import annotations

from dataclasses import replace

import pytest

from conftest import FIXED_NOW, fixed_clock
from dinodivision.core.errors import InvalidIndexError, MalformedAnswerError, PreconditionError
from dinodivision.core.generator import ProblemGenerator
from dinodivision.core.progress import LifetimeProgress, start_session
from dinodivision.core.session import (
    GameLoopOrchestrator,
    GameLoopState,
    GamePhase,
    LiveStepInputResult,
)
from dinodivision.core.solver import solve
from dinodivision.core.validator import StepOutcome, StepValidator


def _fresh(orchestrator: GameLoopOrchestrator, solved: int = 0, rewards=()) -> GameLoopState:
    lifetime = LifetimeProgress(total_problems_solved=solved, total_problems_attempted=solved)
    progress = start_session(lifetime, clock=fixed_clock, session_id="session-test")
    return orchestrator.new_state(progress, rewards, clock=fixed_clock)


def _finish_problem(orchestrator: GameLoopOrchestrator, state: GameLoopState) -> LiveStepInputResult:
    """Type every expected value until the problem completes."""
    while True:
        result = orchestrator.apply_live_step_input(state, state.current_step.expected_value)
        if result.chained_to_next_problem:
            return result
        state = result.state


def _wrong_answer(expected: str) -> str:
    return str(int(expected) + 1)


# ---------------------------------------------------------------------------
# new_state
# ---------------------------------------------------------------------------

class TestNewState:
    def test_idle(self, orchestrator: GameLoopOrchestrator):
        state = _fresh(orchestrator)
        assert state.phase is GamePhase.IDLE
        assert state.active_problem is None
        assert state.steps == ()
        assert state.active_input_target is None
        assert state.current_step is None
        assert state.unlocked_rewards == ()

    def test_difficulty_from_lifetime(self, orchestrator: GameLoopOrchestrator):
        assert _fresh(orchestrator, solved=12).progress.lifetime.current_difficulty_level == 3

    def test_missing_rewards_are_restored(self, orchestrator: GameLoopOrchestrator):
        state = _fresh(orchestrator, solved=12)
        assert [r.dinosaur_name for r in state.unlocked_rewards] == ["Tyrannosaurus Rex", "Velociraptor"]
        assert [r.milestone_solved_count for r in state.unlocked_rewards] == [5, 10]
        assert state.unlocked_rewards[0].earned_at == FIXED_NOW.isoformat()
        assert state.progress.lifetime.rewards_unlocked == 2

    def test_unearned_history_trimmed(self, orchestrator: GameLoopOrchestrator, resolver):
        history = [resolver.build_reward(n, "2025-01-01T00:00:00+00:00") for n in (1, 2, 3)]
        state = _fresh(orchestrator, solved=5, rewards=history)
        assert state.unlocked_rewards == (history[0],)
        assert state.progress.lifetime.rewards_unlocked == 1

    def test_restored_rewards_use_resolver_clock(self, orchestrator: GameLoopOrchestrator):
        lifetime = LifetimeProgress(total_problems_solved=10, total_problems_attempted=10)
        progress = start_session(lifetime, clock=fixed_clock)

        def _unused_clock():
            raise AssertionError("progress was supplied")

        state = orchestrator.new_state(progress, (), clock=_unused_clock)
        assert [r.earned_at for r in state.unlocked_rewards] == [FIXED_NOW.isoformat()] * 2

    def test_default_progress(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.new_state(clock=fixed_clock)
        assert state.progress.lifetime == LifetimeProgress()
        assert state.progress.session.started_at == FIXED_NOW.isoformat()


# ---------------------------------------------------------------------------
# start_next_problem
# ---------------------------------------------------------------------------

class TestStartNextProblem:
    def test_activates_problem(self, orchestrator: GameLoopOrchestrator):
        result = orchestrator.start_next_problem(_fresh(orchestrator))
        state = result.state
        assert state.phase is GamePhase.ACTIVE
        assert state.active_problem is result.problem
        assert state.active_step_index == 0
        assert state.steps == solve(result.problem).steps
        assert state.active_input_target.lane == "quotient"
        assert state.active_input_target.step_id == state.steps[0].id

    def test_counts_attempt(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        assert state.progress.session.attempted_problems == 1
        assert state.progress.lifetime.total_problems_attempted == 1
        assert state.progress.session.solved_problems == 0

    def test_uses_tier_for_lifetime_total(self, orchestrator: GameLoopOrchestrator):
        result = orchestrator.start_next_problem(_fresh(orchestrator, solved=20))
        assert result.problem.difficulty_level == 4
        assert 1000 <= result.problem.dividend <= 9999
        assert 10 <= result.problem.divisor <= 99

    def test_rejects_active_problem(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        with pytest.raises(PreconditionError, match="active"):
            orchestrator.start_next_problem(state)

    def test_rejects_inconsistent_counters(self, orchestrator: GameLoopOrchestrator):
        state = _fresh(orchestrator)
        broken = replace(
            state,
            progress=replace(
                state.progress,
                lifetime=replace(state.progress.lifetime, total_problems_solved=3),
            ),
        )
        with pytest.raises(PreconditionError):
            orchestrator.start_next_problem(broken)

    def test_rejects_steps_without_problem(self, orchestrator: GameLoopOrchestrator):
        active = orchestrator.start_next_problem(_fresh(orchestrator)).state
        broken = replace(_fresh(orchestrator), steps=active.steps)
        with pytest.raises(PreconditionError, match="steps"):
            orchestrator.start_next_problem(broken)

    def test_remainder_override(self, table, resolver, rng):
        orchestrator = GameLoopOrchestrator(
            table=table,
            generator=ProblemGenerator(table),
            validator=StepValidator(),
            resolver=resolver,
            random_source=rng,
            remainder_mode="require",
        )
        state = _fresh(orchestrator)
        for _ in range(10):
            result = orchestrator.start_next_problem(state)
            assert result.problem.remainder > 0
            assert result.problem.allow_remainder is True


# ---------------------------------------------------------------------------
# apply_live_step_input
# ---------------------------------------------------------------------------

class TestApplyLiveStepInput:
    def test_idle_rejected(self, orchestrator: GameLoopOrchestrator):
        with pytest.raises(PreconditionError):
            orchestrator.apply_live_step_input(_fresh(orchestrator), "1")

    def test_incorrect_leaves_state_alone(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        result = orchestrator.apply_live_step_input(state, _wrong_answer(state.current_step.expected_value))
        assert result.state is state
        assert result.validation.outcome is StepOutcome.INCORRECT
        assert result.validation.did_advance is False
        assert result.completed_problem is None
        assert result.chained_to_next_problem is False

    def test_malformed_input(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        with pytest.raises(MalformedAnswerError):
            orchestrator.apply_live_step_input(state, "four")

    def test_leading_zeros_accepted(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        result = orchestrator.apply_live_step_input(state, "00" + state.current_step.expected_value)
        assert result.validation.outcome is StepOutcome.CORRECT

    def test_correct_advances(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        result = orchestrator.apply_live_step_input(state, state.current_step.expected_value)
        assert result.validation.outcome is StepOutcome.CORRECT
        assert result.state.phase is GamePhase.STEPPING
        assert result.state.active_step_index == 1
        assert result.state.active_input_target.step_id == state.steps[1].id
        assert result.state.progress == state.progress

    def test_bad_step_index(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        broken = replace(state, active_step_index=len(state.steps))
        with pytest.raises(InvalidIndexError):
            orchestrator.apply_live_step_input(broken, "1")


# ---------------------------------------------------------------------------
# Completion and chaining
# ---------------------------------------------------------------------------

class TestCompletion:
    def test_completes_and_chains(self, orchestrator: GameLoopOrchestrator):
        started = orchestrator.start_next_problem(_fresh(orchestrator))
        result = _finish_problem(orchestrator, started.state)

        assert result.validation.outcome is StepOutcome.COMPLETE
        assert result.completed_problem.problem_id == started.problem.id
        assert result.completed_problem.solved_problems_this_session == 1
        assert result.completed_problem.total_problems_solved == 1
        assert result.newly_unlocked_rewards == ()

        assert result.chained_to_next_problem is True
        assert result.next_problem is result.state.active_problem
        assert result.state.phase is GamePhase.ACTIVE
        assert result.state.progress.session.attempted_problems == 2
        assert result.state.progress.lifetime.total_problems_solved == 1

    def test_fifth_solve_unlocks_reward(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator, solved=4)).state
        result = _finish_problem(orchestrator, state)

        (reward,) = result.newly_unlocked_rewards
        assert reward.reward_id == "reward-1"
        assert reward.dinosaur_name == "Tyrannosaurus Rex"
        assert reward.milestone_solved_count == 5
        assert reward.image_path == "/rewards/tyrannosaurus-rex.png"
        assert reward.earned_at == FIXED_NOW.isoformat()
        assert result.state.unlocked_rewards == (reward,)
        assert result.state.progress.lifetime.rewards_unlocked == 1

    def test_difficulty_bumps_before_next_problem(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator, solved=4)).state
        assert state.active_problem.difficulty_level == 1

        result = _finish_problem(orchestrator, state)
        assert result.state.progress.lifetime.current_difficulty_level == 2
        assert result.next_problem.difficulty_level == 2

    def test_rewards_never_outrun_total(self, orchestrator: GameLoopOrchestrator):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        for _ in range(11):
            state = _finish_problem(orchestrator, state).state
            total = state.progress.lifetime.total_problems_solved
            assert all(r.milestone_solved_count <= total for r in state.unlocked_rewards)
            assert len(state.unlocked_rewards) == total // 5
        assert state.progress.session.solved_problems == 11

    def test_completion_is_logged(self, orchestrator: GameLoopOrchestrator, caplog):
        state = orchestrator.start_next_problem(_fresh(orchestrator)).state
        with caplog.at_level("INFO", logger="dinodivision.core.session"):
            result = _finish_problem(orchestrator, state)
        assert f"Solved {result.completed_problem.problem_id}" in caplog.text
