"""Exception taxonomy for the division engine.

An incorrect step answer is an ordinary outcome and never raises; these
exceptions cover malformed input, programmer errors and exhausted generation.
"""

from __future__ import annotations


class DivisionEngineError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(DivisionEngineError, ValueError):
    """Caller-supplied input was rejected before it could be scored."""


class MalformedAnswerError(ValidationError):
    """Submitted text is not a non-negative whole number."""

    def __init__(self, submitted: object) -> None:
        super().__init__(f"Answer must be a non-negative whole number, got {submitted!r}")
        self.submitted = submitted


class InvalidIndexError(ValidationError, IndexError):
    """A step index does not reference an existing step."""


class PreconditionError(DivisionEngineError):
    """An operation was called with arguments or state it does not accept."""


class GenerationExhaustedError(DivisionEngineError, RuntimeError):
    def __init__(self, difficulty_level: int, max_attempts: int) -> None:
        super().__init__(
            f"Unable to generate a division problem for difficulty level "
            f"{difficulty_level} after {max_attempts} attempts"
        )
        self.difficulty_level = difficulty_level
        self.max_attempts = max_attempts


class InternalConsistencyError(DivisionEngineError, RuntimeError):
    """The solver disagreed with the quotient/remainder of a generated problem."""
