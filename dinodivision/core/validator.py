from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from dinodivision.core.errors import InvalidIndexError, MalformedAnswerError
from dinodivision.core.models import LongDivisionStep, StepKind

_WHOLE_NUMBER = re.compile(r"\d+", re.ASCII)


class StepOutcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    COMPLETE = "complete"


@dataclass(frozen=True)
class StepHint:
    """Feedback classification; the caller turns ``message_key`` into text."""

    step_kind: StepKind
    tone: str
    code: str
    message_key: str


@dataclass(frozen=True)
class StepValidationResult:
    outcome: StepOutcome
    did_advance: bool
    focus_step_index: Optional[int]
    normalized_submitted_value: str
    current_step_index: int
    expected_value: str
    hint: StepHint

    @property
    def is_problem_complete(self) -> bool:
        return self.outcome is StepOutcome.COMPLETE


def normalize_answer(submitted: object) -> str:
    """Trim, require digits only, and drop leading zeros ("007" -> "7", "000" -> "0")."""
    if not isinstance(submitted, str):
        raise MalformedAnswerError(submitted)
    trimmed = submitted.strip()
    if not _WHOLE_NUMBER.fullmatch(trimmed):
        raise MalformedAnswerError(submitted)
    return trimmed.lstrip("0") or "0"


def _retry_hint(step: LongDivisionStep, submitted: str, expected: str) -> StepHint:
    code = "retry"
    if step.kind is StepKind.QUOTIENT_DIGIT:
        code = "too-large" if int(submitted) > int(expected) else "too-small"
    key = f"dino.feedback.retry.{step.kind.value}"
    if code != "retry":
        key = f"{key}.{code}"
    return StepHint(step_kind=step.kind, tone="retry", code=code, message_key=key)


def _correct_hint(step: LongDivisionStep) -> StepHint:
    return StepHint(
        step_kind=step.kind,
        tone="encouragement",
        code="correct",
        message_key=f"dino.feedback.correct.{step.kind.value}",
    )


def _complete_hint(step: LongDivisionStep) -> StepHint:
    return StepHint(
        step_kind=step.kind,
        tone="celebration",
        code="complete",
        message_key="dino.feedback.complete.problem",
    )


class StepValidator:
    def validate(
        self,
        steps: Sequence[LongDivisionStep],
        current_step_index: int,
        submitted_text: str,
    ) -> StepValidationResult:
        """Score ``submitted_text`` against the step at ``current_step_index``.

        Raises InvalidIndexError for an index outside ``steps`` and
        MalformedAnswerError for text that is not a whole number. A wrong
        number is not an error: it comes back as ``StepOutcome.INCORRECT``.
        """
        if (
            not isinstance(current_step_index, int)
            or isinstance(current_step_index, bool)
            or not 0 <= current_step_index < len(steps)
        ):
            raise InvalidIndexError(
                f"current_step_index {current_step_index!r} out of range for {len(steps)} step(s)"
            )

        step = steps[current_step_index]
        normalized = normalize_answer(submitted_text)
        expected = normalize_answer(step.expected_value)

        if normalized != expected:
            return StepValidationResult(
                outcome=StepOutcome.INCORRECT,
                did_advance=False,
                focus_step_index=current_step_index,
                normalized_submitted_value=normalized,
                current_step_index=current_step_index,
                expected_value=step.expected_value,
                hint=_retry_hint(step, normalized, expected),
            )

        if current_step_index == len(steps) - 1:
            return StepValidationResult(
                outcome=StepOutcome.COMPLETE,
                did_advance=True,
                focus_step_index=None,
                normalized_submitted_value=normalized,
                current_step_index=current_step_index,
                expected_value=step.expected_value,
                hint=_complete_hint(step),
            )

        return StepValidationResult(
            outcome=StepOutcome.CORRECT,
            did_advance=True,
            focus_step_index=current_step_index + 1,
            normalized_submitted_value=normalized,
            current_step_index=current_step_index,
            expected_value=step.expected_value,
            hint=_correct_hint(step),
        )
