"""Failure taxonomy shared by the pipeline engine and its service adapters."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from memeforge.pipeline.shape import Violation


class MemeforgeError(Exception):
    """Base class for every error raised by memeforge."""


class ValidationFailure(MemeforgeError):
    """A value did not conform to a Shape.

    Carries every violation found, not just the first.
    """

    def __init__(self, violations: Sequence[Violation]) -> None:
        self.violations: tuple[Violation, ...] = tuple(violations)
        count = len(self.violations)
        noun = "violation" if count == 1 else "violations"
        summary = "; ".join(v.message for v in self.violations)
        super().__init__(f"{count} {noun}: {summary}")


class NetworkFailure(MemeforgeError):
    """Transport-level failure: unreachable, timed out, or malformed response.

    Eligible for bounded retry inside an adapter.
    """


class ServiceFailure(MemeforgeError):
    """The remote service answered but rejected the request. Never retried."""


class ConfigurationFailure(MemeforgeError):
    """A pipeline definition or settings file is malformed."""


class StepError(MemeforgeError):
    """A step's own domain check failed."""
