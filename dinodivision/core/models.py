from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dinodivision.core.errors import PreconditionError


class StepKind(str, Enum):
    QUOTIENT_DIGIT = "quotient-digit"
    MULTIPLY_RESULT = "multiply-result"
    SUBTRACTION_RESULT = "subtraction-result"
    BRING_DOWN = "bring-down"


STEP_KIND_TO_LANE = {
    StepKind.QUOTIENT_DIGIT: "quotient",
    StepKind.MULTIPLY_RESULT: "multiply",
    StepKind.SUBTRACTION_RESULT: "subtract",
    StepKind.BRING_DOWN: "bring-down",
}


@dataclass(frozen=True)
class DivisionProblem:
    """A single long-division problem. Immutable once generated."""

    id: str
    dividend: int
    divisor: int
    quotient: int
    remainder: int
    difficulty_level: int
    allow_remainder: bool

    @property
    def has_remainder(self) -> bool:
        return self.remainder > 0

    def check_invariants(self) -> None:
        if not self.id or not self.id.strip():
            raise PreconditionError("problem.id must be a non-empty string")
        if self.divisor < 1:
            raise PreconditionError(f"problem.divisor must be >= 1, got {self.divisor}")
        if self.dividend < 0 or self.quotient < 0:
            raise PreconditionError("problem.dividend and problem.quotient must be non-negative")
        if not 0 <= self.remainder < self.divisor:
            raise PreconditionError(
                f"problem.remainder must be in [0, {self.divisor - 1}], got {self.remainder}"
            )
        if self.dividend != self.divisor * self.quotient + self.remainder:
            raise PreconditionError(
                f"{self.dividend} != {self.divisor} * {self.quotient} + {self.remainder}"
            )


@dataclass(frozen=True)
class LongDivisionStep:
    id: str
    problem_id: str
    kind: StepKind
    sequence_index: int
    expected_value: str
    input_target_id: str


@dataclass(frozen=True)
class ActiveInputTarget:
    """Where the UI should place the cursor for the current step."""

    id: str
    problem_id: str
    step_id: str
    lane: str
    row_index: int
    column_index: int


@dataclass(frozen=True)
class UnlockedReward:
    reward_id: str
    dinosaur_name: str
    image_path: str
    earned_at: str
    milestone_solved_count: int


def reward_image_slug(dinosaur_name: str) -> str:
    """Lower-case, dash-separated file stem for a dinosaur's reward image."""
    slug = re.sub(r"[^a-z0-9]+", "-", dinosaur_name.strip().lower()).strip("-")
    if not slug:
        raise PreconditionError(f"Dinosaur name {dinosaur_name!r} has no alphanumeric characters")
    return slug


def resolve_input_targets(steps: tuple[LongDivisionStep, ...]) -> list[ActiveInputTarget]:
    """Lay steps out on the bus-stop grid.

    Quotient digits fill row 0 left to right; every other step takes the next
    work row under the column of the most recent quotient digit.
    """
    targets: list[ActiveInputTarget] = []
    quotient_column = 0
    active_column = 0
    work_row = 0
    for step in steps:
        if step.kind is StepKind.QUOTIENT_DIGIT:
            active_column = quotient_column
            row = 0
            quotient_column += 1
        else:
            work_row += 1
            row = work_row
        targets.append(
            ActiveInputTarget(
                id=step.input_target_id,
                problem_id=step.problem_id,
                step_id=step.id,
                lane=STEP_KIND_TO_LANE[step.kind],
                row_index=row,
                column_index=active_column,
            )
        )
    return targets


def input_target_for(
    steps: tuple[LongDivisionStep, ...], step_index: Optional[int]
) -> Optional[ActiveInputTarget]:
    if step_index is None:
        return None
    return resolve_input_targets(steps)[step_index]
