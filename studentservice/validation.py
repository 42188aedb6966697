"""Declarative validation of request objects."""

from __future__ import annotations

import dataclasses
import re
from typing import Any

_GRADE = re.compile(r"Grade[\t\n\f\r ](1[0-2]|[1-9])")
_GRADE_MESSAGE = "invalid class value,please enter valid grade. e.g Grade 1, Grade 2"
_TRANSLATIONS = {
    "checkValidGrade": _GRADE_MESSAGE,
    "checkValidGradeUpdate": _GRADE_MESSAGE,
}


class ValidationError(Exception):
    """Raised when a request fails validation; ``fields`` maps field to message."""

    def __init__(self, message: str, fields: dict[str, str]):
        super().__init__(message)
        self.message = message
        self.fields = dict(fields)


def is_valid_grade(value: Any) -> bool:
    """True for "Grade 1" through "Grade 12"."""
    return isinstance(value, str) and _GRADE.fullmatch(value) is not None


def _is_zero(value: Any) -> bool:
    return value is None or value is False or value == "" or value == 0


def _passes(tag: str, value: Any) -> bool:
    if tag == "required":
        return not _is_zero(value)
    if tag == "checkValidGrade":
        return is_valid_grade(value)
    if tag == "checkValidGradeUpdate":
        return not isinstance(value, str) or is_valid_grade(value)
    raise ValueError(f"unknown validation tag {tag!r}")


def validate(request: Any) -> None:
    """Check a request dataclass against the rules in its field metadata."""
    struct = type(request).__name__
    errors: dict[str, str] = {}
    message = ""
    for spec in dataclasses.fields(request):
        rule = spec.metadata.get("validate")
        if not rule:
            continue
        value = getattr(request, spec.name)
        tags = rule.split(",")
        if tags[0] == "omitempty":
            if _is_zero(value):
                continue
            tags = tags[1:]
        key = spec.metadata.get("field", spec.name.replace("_", "")).lower()
        for tag in tags:
            if _passes(tag, value):
                continue
            text = _TRANSLATIONS.get(tag) or (
                f"Key: '{struct}.{key}' Error:Field validation for '{key}' failed on the '{tag}' tag"
            )
            errors[key] = text.lower()
            message = errors[key]
            break
    if errors:
        raise ValidationError(message, errors)