"""Sequential execution engine: validates and threads data between steps."""

from __future__ import annotations

import asyncio
import copy
import time
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar

from memeforge._log import get_logger
from memeforge.errors import ConfigurationFailure, ValidationFailure
from memeforge.pipeline.shape import Violation, check_compatible, find_violations
from memeforge.pipeline.step import Step

logger = get_logger("pipeline.runner")


class FailureReason(StrEnum):
    INVALID_INPUT = "invalid-input"
    EXECUTION_ERROR = "execution-error"
    INVALID_OUTPUT = "invalid-output"


@dataclass(frozen=True)
class StepTrace:
    name: str
    status: str
    duration_ms: int = 0


@dataclass(frozen=True)
class Success:
    output: dict[str, Any]
    run_id: str = ""
    traces: tuple[StepTrace, ...] = ()
    duration_ms: int = 0

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    step_name: str
    reason: FailureReason
    detail: str
    violations: tuple[Violation, ...] = ()
    error_type: str | None = None
    run_id: str = ""
    traces: tuple[StepTrace, ...] = ()
    duration_ms: int = 0

    ok: ClassVar[bool] = False


ExecutionResult = Success | Failure


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _describe_error(error: Exception) -> str:
    return str(error) or type(error).__name__


def _check_definition(name: str, steps: tuple[Step, ...]) -> None:
    """Reject empty chains, duplicate names and incompatible adjacent shapes."""
    if not steps:
        raise ConfigurationFailure(f"Pipeline '{name}' has no steps")

    seen: set[str] = set()
    for s in steps:
        if not isinstance(s, Step):
            raise ConfigurationFailure(
                f"Pipeline '{name}' expects Step instances, got {type(s).__name__}"
            )
        if s.name in seen:
            raise ConfigurationFailure(f"Duplicate step name: '{s.name}'")
        seen.add(s.name)

    for producer, consumer in zip(steps, steps[1:]):
        problems = check_compatible(producer.output_shape, consumer.input_shape)
        if problems:
            raise ConfigurationFailure(
                f"Output of step '{producer.name}' does not satisfy the input of "
                f"step '{consumer.name}': " + "; ".join(problems)
            )


class Pipeline:
    """An ordered, type-checked chain of steps.

    The chain is checked once at construction; a pipeline that constructs
    successfully can be run any number of times, concurrently, since it
    holds no per-run state.
    """

    def __init__(self, name: str, steps: Sequence[Step]) -> None:
        self._name = name
        self._steps = tuple(steps)
        _check_definition(name, self._steps)

    @property
    def name(self) -> str:
        return self._name

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    def run_sync(self, initial_input: Mapping[str, Any]) -> ExecutionResult:
        """Run the pipeline from synchronous code."""
        return asyncio.run(self.run(initial_input))

    async def run(self, initial_input: Mapping[str, Any]) -> ExecutionResult:
        """Execute every step in order, stopping at the first failure."""
        run_id = uuid.uuid4().hex[:12]
        start = time.monotonic()
        traces: list[StepTrace] = []

        def fail(
            index: int,
            reason: FailureReason,
            detail: str,
            *,
            violations: Sequence[Violation] = (),
            error_type: str | None = None,
        ) -> Failure:
            failed = self._steps[index]
            skipped = [StepTrace(s.name, "skipped") for s in self._steps[index + 1 :]]
            logger.warning(
                "Run %s of '%s' failed at step '%s' (%s): %s",
                run_id,
                self._name,
                failed.name,
                reason.value,
                detail,
            )
            return Failure(
                step_name=failed.name,
                reason=reason,
                detail=detail,
                violations=tuple(violations),
                error_type=error_type,
                run_id=run_id,
                traces=tuple(traces + skipped),
                duration_ms=_elapsed_ms(start),
            )

        first = self._steps[0]
        violations = find_violations(first.input_shape, initial_input)
        if violations:
            traces.append(StepTrace(first.name, "skipped"))
            return fail(
                0,
                FailureReason.INVALID_INPUT,
                str(ValidationFailure(violations)),
                violations=violations,
                error_type=ValidationFailure.__name__,
            )

        context: dict[str, Any] = copy.deepcopy(dict(initial_input))
        logger.debug("Run %s of '%s' started (%d steps)", run_id, self._name, len(self._steps))

        for index, current in enumerate(self._steps):
            step_start = time.monotonic()
            logger.debug("Run %s: executing step '%s'", run_id, current.name)
            try:
                output = await current.execute(context)
            except Exception as e:
                traces.append(StepTrace(current.name, "failed", _elapsed_ms(step_start)))
                return fail(
                    index,
                    FailureReason.EXECUTION_ERROR,
                    _describe_error(e),
                    error_type=type(e).__name__,
                )

            violations = find_violations(current.output_shape, output)
            if violations:
                traces.append(StepTrace(current.name, "failed", _elapsed_ms(step_start)))
                return fail(
                    index,
                    FailureReason.INVALID_OUTPUT,
                    str(ValidationFailure(violations)),
                    violations=violations,
                    error_type=ValidationFailure.__name__,
                )

            duration_ms = _elapsed_ms(step_start)
            traces.append(StepTrace(current.name, "ok", duration_ms))
            logger.debug("Run %s: step '%s' finished in %dms", run_id, current.name, duration_ms)
            context = dict(output)

        logger.debug("Run %s of '%s' succeeded", run_id, self._name)
        return Success(
            output=context,
            run_id=run_id,
            traces=tuple(traces),
            duration_ms=_elapsed_ms(start),
        )
