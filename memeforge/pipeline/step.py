"""Step descriptors: named, shape-typed async transformations."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from memeforge.pipeline.shape import Shape

StepFn = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class Step:
    """A named unit of work with declared input and output shapes.

    ``execute`` is only ever called by the runner with input that already
    conforms to ``input_shape``. It may perform network I/O and may be
    called more than once for the same input.
    """

    name: str
    input_shape: Shape
    output_shape: Shape
    execute: StepFn
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Step name must not be empty")
        if not callable(self.execute):
            raise TypeError(f"Step '{self.name}' execute must be callable")


def step(
    name: str,
    *,
    input: Shape,
    output: Shape,
    description: str | None = None,
) -> Callable[[StepFn], Step]:
    """Decorator that turns an async function into a :class:`Step`.

    The description defaults to the first line of the function's docstring.
    """

    def decorator(fn: StepFn) -> Step:
        desc = description
        if desc is None:
            doc = inspect.getdoc(fn) or ""
            desc = doc.splitlines()[0] if doc else ""
        return Step(
            name=name,
            input_shape=input,
            output_shape=output,
            execute=fn,
            description=desc,
        )

    return decorator
