from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[0-9+\-\s()]+$")


@dataclass(frozen=True)
class SchemaFieldSpec:
    """Everything validation needs to know about one field of a user type."""

    name: str
    label: str
    kind: str
    required: bool
    sort_order: int
    options: tuple[str, ...] = ()

    @classmethod
    def from_link(cls, link) -> "SchemaFieldSpec":
        field = link.field
        return cls(
            name=field.name,
            label=field.label,
            kind=field.kind,
            required=bool(link.required),
            sort_order=int(link.sort_order),
            options=tuple(str(item) for item in (field.options or [])),
        )


def _is_missing_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def _kind_error(spec: SchemaFieldSpec, value: Any) -> str | None:
    if spec.kind == "email":
        if not isinstance(value, str) or not EMAIL_RE.match(value):
            return "Invalid email format"
    elif spec.kind == "phone":
        if isinstance(value, bool) or not PHONE_RE.match(str(value)):
            return "Invalid phone number format"
    elif spec.kind == "number":
        if not _is_number(value):
            return "Must be a valid number"
    elif spec.kind == "dropdown":
        if spec.options and value not in spec.options:
            return "Invalid option. Must be one of: " + ", ".join(spec.options)
    return None


def validate_payload(fields: Iterable[SchemaFieldSpec], payload: Mapping[str, Any] | None) -> dict[str, str]:
    """Check ``payload`` against the field specs of a user type.

    Returns a mapping of field name to error message; an empty mapping means
    the payload is accepted. Every field is checked, so one call reports all
    problems. Keys not declared by the schema are ignored.
    """
    data = payload if isinstance(payload, Mapping) else {}
    errors: dict[str, str] = {}
    for spec in sorted(fields, key=lambda item: item.sort_order):
        value = data.get(spec.name)
        if _is_missing_value(value):
            if spec.required:
                errors[spec.name] = f"{spec.label} is required"
            continue
        message = _kind_error(spec, value)
        if message:
            errors[spec.name] = message
    return errors
