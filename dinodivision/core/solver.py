from __future__ import annotations

from dataclasses import dataclass

from dinodivision.core.errors import InternalConsistencyError, PreconditionError
from dinodivision.core.models import DivisionProblem, LongDivisionStep, StepKind


@dataclass(frozen=True)
class LongDivisionSolution:
    problem_id: str
    dividend: int
    divisor: int
    quotient: int
    remainder: int
    steps: tuple[LongDivisionStep, ...]


def _make_step(problem_id: str, sequence_index: int, kind: StepKind, value: int) -> LongDivisionStep:
    step_id = f"{problem_id}:step:{sequence_index}:{kind.value}"
    return LongDivisionStep(
        id=step_id,
        problem_id=problem_id,
        kind=kind,
        sequence_index=sequence_index,
        expected_value=str(value),
        input_target_id=f"{step_id}:target",
    )


def solve(problem: DivisionProblem) -> LongDivisionSolution:
    """Break a problem into divide, multiply, subtract and bring-down steps.

    The working value is seeded with as many leading dividend digits as it
    takes to reach the divisor. Each cycle then emits a quotient digit, its
    product and the difference; while digits remain, the next one is brought
    down next to the difference. The quotient digits and the last difference
    must reproduce the problem's quotient and remainder.
    """
    if not problem.id or not problem.id.strip():
        raise PreconditionError("problem.id must be a non-empty string")
    if problem.dividend < 0:
        raise PreconditionError(f"problem.dividend must be non-negative, got {problem.dividend}")
    if problem.divisor < 1:
        raise PreconditionError(f"problem.divisor must be >= 1, got {problem.divisor}")

    digits = [int(ch) for ch in str(problem.dividend)]
    divisor = problem.divisor
    steps: list[LongDivisionStep] = []
    quotient_digits: list[str] = []

    digit_index = 0
    working = digits[0]
    while working < divisor and digit_index < len(digits) - 1:
        digit_index += 1
        working = working * 10 + digits[digit_index]

    while True:
        quotient_digit = working // divisor
        product = quotient_digit * divisor
        difference = working - product
        quotient_digits.append(str(quotient_digit))

        steps.append(_make_step(problem.id, len(steps), StepKind.QUOTIENT_DIGIT, quotient_digit))
        steps.append(_make_step(problem.id, len(steps), StepKind.MULTIPLY_RESULT, product))
        steps.append(_make_step(problem.id, len(steps), StepKind.SUBTRACTION_RESULT, difference))

        if digit_index >= len(digits) - 1:
            break
        digit_index += 1
        working = difference * 10 + digits[digit_index]
        steps.append(_make_step(problem.id, len(steps), StepKind.BRING_DOWN, working))

    quotient = int("".join(quotient_digits))
    remainder = difference
    if quotient != problem.quotient or remainder != problem.remainder:
        raise InternalConsistencyError(
            f"Problem {problem.id}: long division of {problem.dividend} / {divisor} gives "
            f"{quotient} r {remainder}, problem says {problem.quotient} r {problem.remainder}"
        )

    return LongDivisionSolution(
        problem_id=problem.id,
        dividend=problem.dividend,
        divisor=divisor,
        quotient=quotient,
        remainder=remainder,
        steps=tuple(steps),
    )
