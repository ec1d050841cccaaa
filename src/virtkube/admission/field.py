# src/virtkube/admission/field.py
"""
Field paths and field-level validation errors. Validators collect every
violation of an admission request into an `ErrorList` and report them
together.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Union

from ..core.exceptions import AdmissionError


class Path:
    """A path to a field of an object, rendered as e.g. `spec.provider.workers[0].providerConfig`."""

    def __init__(self, *segments: Union[str, int]):
        self._segments = tuple(segments)

    def child(self, name: str, *more: str) -> "Path":
        return Path(*self._segments, name, *more)

    def index(self, index: int) -> "Path":
        return Path(*self._segments, index)

    def key(self, key: str) -> "Path":
        return Path(*self._segments, f"[{key}]")

    def __str__(self) -> str:
        rendered = ""
        for segment in self._segments:
            if isinstance(segment, int):
                rendered += f"[{segment}]"
            elif segment.startswith("["):
                rendered += segment
            else:
                rendered += f".{segment}" if rendered else segment
        return rendered

    def __repr__(self) -> str:
        return f"Path({str(self)!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Path) and self._segments == other._segments

    def __hash__(self) -> int:
        return hash(self._segments)


class ErrorType(str, Enum):
    REQUIRED = "Required value"
    INVALID = "Invalid value"
    DUPLICATE = "Duplicate value"
    NOT_SUPPORTED = "Unsupported value"
    FORBIDDEN = "Forbidden"


_OMIT = object()


@dataclass(frozen=True)
class FieldError:
    type: ErrorType
    field: str
    bad_value: Any = _OMIT
    detail: str = ""

    def __str__(self) -> str:
        message = f"{self.field}: {self.type.value}"
        if self.bad_value is not _OMIT:
            try:
                value = json.dumps(self.bad_value)
            except (TypeError, ValueError):
                value = repr(self.bad_value)
            message += f": {value}"
        if self.detail:
            message += f": {self.detail}"
        return message


def required(path: Path, detail: str = "") -> FieldError:
    return FieldError(ErrorType.REQUIRED, str(path), detail=detail)


def invalid(path: Path, value: Any, detail: str = "") -> FieldError:
    return FieldError(ErrorType.INVALID, str(path), value, detail)


def duplicate(path: Path, value: Any) -> FieldError:
    return FieldError(ErrorType.DUPLICATE, str(path), value)


def not_supported(path: Path, value: Any, valid_values: Iterable[str]) -> FieldError:
    detail = "supported values: " + ", ".join(f'"{v}"' for v in valid_values)
    return FieldError(ErrorType.NOT_SUPPORTED, str(path), value, detail)


def forbidden(path: Path, detail: str = "") -> FieldError:
    return FieldError(ErrorType.FORBIDDEN, str(path), detail=detail)


class ErrorList(list):
    """A list of FieldErrors that can be turned into a single AdmissionError."""

    def to_aggregate(self) -> Optional[AdmissionError]:
        if not self:
            return None
        return AdmissionError(self)

    def raise_if_any(self) -> None:
        aggregate = self.to_aggregate()
        if aggregate is not None:
            raise aggregate
