from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Optional

from dinodivision.core.errors import GenerationExhaustedError, PreconditionError
from dinodivision.core.levels import REMAINDER_MODES, DifficultyTable
from dinodivision.core.models import DivisionProblem

logger = logging.getLogger(__name__)

RandomSource = Callable[[], float]

DEFAULT_MAX_ATTEMPTS = 300
_ID_SPACE = 1_000_000_000


def digit_count(value: int) -> int:
    return len(str(abs(value)))


def _unit(random_source: RandomSource) -> float:
    value = random_source()
    if not isinstance(value, (int, float)) or not 0 <= value < 1:
        raise PreconditionError(f"Random source must return a number in [0, 1), got {value!r}")
    return value


def _randint(low: int, high: int, random_source: RandomSource) -> int:
    """Uniform integer in [low, high] drawn from a unit-interval source."""
    if high < low:
        raise PreconditionError(f"Empty range [{low}, {high}]")
    if high == low:
        return low
    return low + math.floor(_unit(random_source) * (high - low + 1))


def _min_for_digits(digits: int) -> int:
    return 1 if digits == 1 else 10 ** (digits - 1)


def _max_for_digits(digits: int) -> int:
    return 10**digits - 1


@dataclass(frozen=True)
class _Candidate:
    dividend: int
    quotient: int
    remainder: int


class ProblemGenerator:
    """Rejection-samples division problems that fit a difficulty tier."""

    def __init__(self, table: DifficultyTable, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise PreconditionError("max_attempts must be a positive integer")
        self._table = table
        self._max_attempts = max_attempts

    @property
    def table(self) -> DifficultyTable:
        return self._table

    def generate(
        self,
        difficulty_level: int,
        remainder_mode: str = "allow",
        random_source: RandomSource = random.random,
        max_attempts: Optional[int] = None,
    ) -> DivisionProblem:
        if remainder_mode not in REMAINDER_MODES:
            raise PreconditionError(f"remainder_mode must be one of {', '.join(REMAINDER_MODES)}, got {remainder_mode!r}")
        attempts = self._max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise PreconditionError("max_attempts must be a positive integer")
        tier = self._table.tier(difficulty_level)

        for attempt in range(attempts):
            dividend_digits = _randint(*tier.dividend_digits, random_source)
            divisor_digits = _randint(*tier.divisor_digits, random_source)
            min_divisor = _min_for_digits(divisor_digits)
            if remainder_mode == "require":
                min_divisor = max(2, min_divisor)
            divisor = _randint(min_divisor, _max_for_digits(divisor_digits), random_source)

            if remainder_mode == "require":
                wants_remainder = True
            elif remainder_mode == "forbid":
                wants_remainder = False
            else:
                wants_remainder = _unit(random_source) >= 0.5

            candidate = self._candidate(divisor, dividend_digits, wants_remainder, random_source)
            if candidate is None and remainder_mode == "allow":
                candidate = self._candidate(divisor, dividend_digits, not wants_remainder, random_source)
            if candidate is None:
                logger.debug(
                    "Attempt %d rejected: %d-digit dividend infeasible for divisor %d",
                    attempt + 1,
                    dividend_digits,
                    divisor,
                )
                continue

            token = math.floor(_unit(random_source) * _ID_SPACE)
            problem = DivisionProblem(
                id=f"division-{tier.level}-{token:09d}",
                dividend=candidate.dividend,
                divisor=divisor,
                quotient=candidate.quotient,
                remainder=candidate.remainder,
                difficulty_level=tier.level,
                allow_remainder=remainder_mode != "forbid",
            )
            logger.debug("Generated %s after %d attempt(s)", problem, attempt + 1)
            return problem

        logger.warning("Generation exhausted for level %d after %d attempts", tier.level, attempts)
        raise GenerationExhaustedError(tier.level, attempts)

    def generate_for_solved_count(
        self,
        total_problems_solved: int,
        remainder_mode: Optional[str] = None,
        random_source: RandomSource = random.random,
        max_attempts: Optional[int] = None,
    ) -> DivisionProblem:
        tier = self._table.tier_for_solved_count(total_problems_solved)
        return self.generate(
            tier.level,
            remainder_mode or tier.remainder_mode,
            random_source,
            max_attempts,
        )

    @staticmethod
    def _candidate(
        divisor: int,
        dividend_digits: int,
        wants_remainder: bool,
        random_source: RandomSource,
    ) -> Optional[_Candidate]:
        remainder = 0
        if wants_remainder:
            if divisor < 2:
                return None
            remainder = _randint(1, divisor - 1, random_source)

        min_dividend = _min_for_digits(dividend_digits)
        max_dividend = _max_for_digits(dividend_digits)
        low = max(1, -((remainder - min_dividend) // divisor))
        high = (max_dividend - remainder) // divisor
        if low > high:
            return None

        quotient = _randint(low, high, random_source)
        dividend = divisor * quotient + remainder
        if digit_count(dividend) != dividend_digits:
            return None
        return _Candidate(dividend=dividend, quotient=quotient, remainder=remainder)
