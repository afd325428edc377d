"""Declarative value shapes and the pure validator that checks values against them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, create_model, field_validator, model_validator

from memeforge.errors import ValidationFailure

_ROOT = "<root>"


class Kind(StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    LIST = "list"


class FieldSpec(BaseModel):
    """One field of a Shape: its kind, optionality and nested structure."""

    model_config = ConfigDict(frozen=True)

    kind: Kind
    optional: bool = False
    description: str = ""
    shape: Shape | None = None
    items: FieldSpec | None = None

    @model_validator(mode="after")
    def _check_nesting(self) -> FieldSpec:
        if self.kind == Kind.OBJECT and self.shape is None:
            raise ValueError("object fields require a nested 'shape'")
        if self.kind == Kind.LIST and self.items is None:
            raise ValueError("list fields require an 'items' spec")
        if self.kind != Kind.OBJECT and self.shape is not None:
            raise ValueError(f"'shape' is only valid on object fields, not {self.kind}")
        if self.kind != Kind.LIST and self.items is not None:
            raise ValueError(f"'items' is only valid on list fields, not {self.kind}")
        return self


class Shape(BaseModel):
    """Required and optional fields of a structured value.

    Shapes are immutable and compare structurally, so two shapes built
    from the same field specs are equal.
    """

    model_config = ConfigDict(frozen=True)

    properties: Mapping[str, FieldSpec] = Field(default_factory=dict, validate_default=True)

    @field_validator("properties", mode="after")
    @classmethod
    def _freeze_properties(cls, value: Mapping[str, FieldSpec]) -> Mapping[str, FieldSpec]:
        return MappingProxyType(dict(value))

    @classmethod
    def of(cls, **fields: FieldSpec) -> Shape:
        return cls(properties=fields)

    def extend(self, **fields: FieldSpec) -> Shape:
        """Return a new shape with *fields* added (or replaced)."""
        return Shape(properties={**self.properties, **fields})

    def describe(self) -> str:
        """Render as ``{name: string, tags?: [string]}``."""
        parts = [
            f"{name}{'?' if spec.optional else ''}: {_describe_spec(spec)}"
            for name, spec in self.properties.items()
        ]
        return "{" + ", ".join(parts) + "}"

    def to_model(self, model_name: str = "Output") -> type[BaseModel]:
        """Build an equivalent dynamic Pydantic model.

        Required fields become required model fields; optional fields become
        ``T | None`` defaulting to ``None``. Numbers map to ``float``.
        """
        field_definitions: dict[str, Any] = {}
        for name, spec in self.properties.items():
            field_type = _python_type(spec, name, model_name)
            if spec.optional:
                field_definitions[name] = (field_type | None, None)
            else:
                field_definitions[name] = (field_type, ...)
        return create_model(model_name, **field_definitions)


def _describe_spec(spec: FieldSpec) -> str:
    if spec.kind == Kind.OBJECT:
        return spec.shape.describe()  # type: ignore[union-attr]
    if spec.kind == Kind.LIST:
        return f"[{_describe_spec(spec.items)}]"  # type: ignore[arg-type]
    return spec.kind.value


_PY_TYPES: dict[Kind, type] = {
    Kind.STRING: str,
    Kind.NUMBER: float,
    Kind.BOOLEAN: bool,
}


def _python_type(spec: FieldSpec, field_name: str, parent_name: str) -> Any:
    if spec.kind == Kind.OBJECT:
        nested_name = f"{parent_name}_{field_name[:1].upper()}{field_name[1:]}"
        return spec.shape.to_model(nested_name)  # type: ignore[union-attr]
    if spec.kind == Kind.LIST:
        items: FieldSpec = spec.items  # type: ignore[assignment]
        item_type = _python_type(items, f"{field_name}_item", parent_name)
        if items.optional:
            item_type = item_type | None
        return list[item_type]  # type: ignore[valid-type]
    return _PY_TYPES[spec.kind]


FieldSpec.model_rebuild()
Shape.model_rebuild()


# ---------------------------------------------------------------------------
# Field constructors
# ---------------------------------------------------------------------------


def string(*, optional: bool = False, description: str = "") -> FieldSpec:
    return FieldSpec(kind=Kind.STRING, optional=optional, description=description)


def number(*, optional: bool = False, description: str = "") -> FieldSpec:
    return FieldSpec(kind=Kind.NUMBER, optional=optional, description=description)


def boolean(*, optional: bool = False, description: str = "") -> FieldSpec:
    return FieldSpec(kind=Kind.BOOLEAN, optional=optional, description=description)


def obj(shape: Shape, *, optional: bool = False, description: str = "") -> FieldSpec:
    return FieldSpec(kind=Kind.OBJECT, shape=shape, optional=optional, description=description)


def list_of(
    items: FieldSpec | Shape, *, optional: bool = False, description: str = ""
) -> FieldSpec:
    """Ordered list field; a bare Shape is taken as a list of objects."""
    if isinstance(items, Shape):
        items = obj(items)
    return FieldSpec(kind=Kind.LIST, items=items, optional=optional, description=description)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

MISSING_FIELD = "missing-field"
TYPE_MISMATCH = "type-mismatch"


@dataclass(frozen=True)
class Violation:
    path: str
    code: str
    expected: str | None = None
    actual: str | None = None

    @property
    def message(self) -> str:
        if self.code == MISSING_FIELD:
            return f"{self.path}: missing required field"
        return f"{self.path}: expected {self.expected}, got {self.actual}"


def kind_of(value: Any) -> str:
    """Name the primitive kind of a runtime value."""
    if isinstance(value, bool):
        return Kind.BOOLEAN.value
    if isinstance(value, (int, float)):
        return Kind.NUMBER.value
    if isinstance(value, str):
        return Kind.STRING.value
    if isinstance(value, Mapping):
        return Kind.OBJECT.value
    if isinstance(value, (list, tuple)):
        return Kind.LIST.value
    if value is None:
        return "null"
    return type(value).__name__


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _check_value(spec: FieldSpec, value: Any, path: str, out: list[Violation]) -> None:
    actual = kind_of(value)
    if actual != spec.kind.value:
        out.append(Violation(path, TYPE_MISMATCH, expected=spec.kind.value, actual=actual))
        return
    if spec.kind == Kind.OBJECT:
        _check_shape(spec.shape, value, path, out)  # type: ignore[arg-type]
    elif spec.kind == Kind.LIST:
        items: FieldSpec = spec.items  # type: ignore[assignment]
        for index, item in enumerate(value):
            item_path = f"{path}[{index}]"
            if item is None:
                if not items.optional:
                    expected = items.kind.value
                    out.append(Violation(item_path, TYPE_MISMATCH, expected, actual="null"))
                continue
            _check_value(items, item, item_path, out)


def _check_shape(
    shape: Shape, value: Mapping[str, Any], path: str, out: list[Violation]
) -> None:
    for name, spec in shape.properties.items():
        field_path = _join(path, name)
        field_value = value.get(name)
        if field_value is None:
            if not spec.optional:
                out.append(Violation(field_path, MISSING_FIELD, expected=spec.kind.value))
            continue
        _check_value(spec, field_value, field_path, out)


def find_violations(shape: Shape, value: Any) -> list[Violation]:
    """Collect every way *value* fails to conform to *shape*.

    ``None`` counts as absent. Fields not named by the shape are ignored.
    """
    violations: list[Violation] = []
    if not isinstance(value, Mapping):
        violations.append(
            Violation(_ROOT, TYPE_MISMATCH, expected=Kind.OBJECT.value, actual=kind_of(value))
        )
        return violations
    _check_shape(shape, value, "", violations)
    return violations


def validate(shape: Shape, value: Any) -> Any:
    """Return *value* unchanged if it conforms, else raise :class:`ValidationFailure`."""
    violations = find_violations(shape, value)
    if violations:
        raise ValidationFailure(violations)
    return value


# ---------------------------------------------------------------------------
# Static compatibility
# ---------------------------------------------------------------------------


def _compatible_specs(have: FieldSpec, want: FieldSpec, path: str) -> list[str]:
    if have.kind != want.kind:
        return [f"{path}: produced as {have.kind.value}, consumed as {want.kind.value}"]
    if have.kind == Kind.OBJECT:
        return check_compatible(have.shape, want.shape, path)  # type: ignore[arg-type]
    if have.kind == Kind.LIST:
        item_path = f"{path}[]"
        problems: list[str] = []
        if have.items.optional and not want.items.optional:  # type: ignore[union-attr]
            problems.append(f"{item_path}: items may be null but are consumed as required")
        problems.extend(
            _compatible_specs(have.items, want.items, item_path)  # type: ignore[arg-type]
        )
        return problems
    return []


def check_compatible(producer: Shape, consumer: Shape, path: str = "") -> list[str]:
    """List the reasons a *producer* value might not satisfy *consumer*.

    An empty list means every value conforming to *producer* also conforms
    to *consumer*.
    """
    problems: list[str] = []
    for name, want in consumer.properties.items():
        field_path = _join(path, name)
        have = producer.properties.get(name)
        if have is None:
            if not want.optional:
                problems.append(f"{field_path}: required but never produced")
            continue
        if have.optional and not want.optional:
            problems.append(f"{field_path}: required but produced as optional")
        problems.extend(_compatible_specs(have, want, field_path))
    return problems
