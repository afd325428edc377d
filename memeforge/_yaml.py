"""YAML settings files read into pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

_T = TypeVar("_T", bound=BaseModel)


def read_yaml_mapping(path: Path, error_cls: type[Exception]) -> dict[str, Any]:
    """Return the top-level mapping of *path*; an empty document is ``{}``."""
    if not path.is_file():
        raise error_cls(f"Settings file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise error_cls(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise error_cls(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise error_cls(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        where = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{where}: {err['msg']}")
    return "; ".join(parts)


def load_yaml_model(path: Path, model_cls: type[_T], error_cls: type[Exception]) -> _T:
    """Validate the mapping in *path* against *model_cls*.

    Every failure is raised as *error_cls* naming the file, with pydantic
    errors flattened to ``field.path: message`` pairs.
    """
    data = read_yaml_mapping(path, error_cls)
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise error_cls(f"Invalid settings in {path}: {_summarize(e)}") from e
