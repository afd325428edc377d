"""Pipeline engine: shapes, steps and the sequential runner."""

from memeforge.pipeline.runner import (
    ExecutionResult,
    Failure,
    FailureReason,
    Pipeline,
    StepTrace,
    Success,
)
from memeforge.pipeline.shape import (
    FieldSpec,
    Kind,
    Shape,
    Violation,
    boolean,
    check_compatible,
    find_violations,
    list_of,
    number,
    obj,
    string,
    validate,
)
from memeforge.pipeline.step import Step, step

__all__ = [
    "ExecutionResult",
    "Failure",
    "FailureReason",
    "FieldSpec",
    "Kind",
    "Pipeline",
    "Shape",
    "Step",
    "StepTrace",
    "Success",
    "Violation",
    "boolean",
    "check_compatible",
    "find_violations",
    "list_of",
    "number",
    "obj",
    "step",
    "string",
    "validate",
]
