from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from backoffice.services.financial_engine import DateWindow
from backoffice.time_utils import parse_iso_datetime


# Largest amount accepted on any money field (smallest currency unit)
MAX_AMOUNT = 999_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    What a client may send for one model:
    - writable_fields: keys accepted at all; anything else is rejected
    - required_on_create: keys that must be present on create
    - amount_fields: money columns held to 0..MAX_AMOUNT
    """
    writable_fields: frozenset[str] | set[str]
    required_on_create: frozenset[str] | set[str] = field(default_factory=frozenset)
    amount_fields: frozenset[str] | set[str] = field(default_factory=frozenset)


# ---------------------------------------------------------------------------
# Column coercion
# ---------------------------------------------------------------------------

def _to_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # Amounts are whole minor units
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if isinstance(value, str):
        text = value.strip()
        if "e" in text.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in text:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(text)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    raise ValidationError(f"{key} must be an integer")


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{key} must be a boolean")


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _to_text(col, value: Any) -> str:
    text = str(value).strip()
    if text == "" and not col.nullable:
        raise ValidationError(f"{col.key} cannot be blank")
    length = getattr(col.type, "length", None)
    if length and len(text) > length:
        raise ValidationError(f"{col.key} exceeds max length {length}")
    return text


def _coerce_value(col, value: Any):
    coltype = col.type
    if isinstance(coltype, Integer):
        return _to_int(col.key, value)
    if isinstance(coltype, Boolean):
        return _to_bool(col.key, value)
    if isinstance(coltype, DateTime):
        return _to_datetime(col.key, value)
    if isinstance(coltype, (String, Text)):
        return _to_text(col, value)
    # JSON and anything else pass through
    return value


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON payload against the policy and the model's columns.

    partial=False is create semantics (required fields enforced);
    partial=True validates only the keys that were sent.
    Returns the cleaned patch, ready for Model(**patch) or setattr.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(set(policy.required_on_create) - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}
    for key, raw in payload.items():
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        col = columns.get(key)
        if col is None:
            raise ValidationError(f"Unknown field: {key}")

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce_value(col, raw)
        if key in policy.amount_fields:
            enforce_amount(key, value)
        patch[key] = value

    return patch


def enforce_amount(field_name: str, value: Any) -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    if value > MAX_AMOUNT:
        raise ValidationError(f"{field_name} cannot exceed {MAX_AMOUNT}")


def enforce_choice(field_name: str, value: Any, allowed: set[str]) -> None:
    if value is not None and value not in allowed:
        raise ValidationError(f"{field_name} must be one of: {', '.join(sorted(allowed))}")


# ---------------------------------------------------------------------------
# Financial request parameters
# ---------------------------------------------------------------------------

def parse_date_window(payload: Any) -> DateWindow | None:
    """
    Build a reporting window from {"from": ISO, "to": ISO}.

    None or an empty mapping means "no window". A bound that is present but
    not an ISO-8601 datetime is rejected rather than silently widening the
    report.
    """
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise ValidationError("dateRange must be an object with 'from' and 'to'")

    bounds = {}
    for name in ("from", "to"):
        raw = payload.get(name)
        if raw in (None, ""):
            bounds[name] = None
            continue
        if not isinstance(raw, str):
            raise ValidationError(f"dateRange.{name} must be an ISO-8601 datetime")
        try:
            bounds[name] = parse_iso_datetime(raw)
        except ValueError:
            raise ValidationError(f"dateRange.{name} must be an ISO-8601 datetime")

    if bounds["from"] is None and bounds["to"] is None:
        return None
    if bounds["from"] and bounds["to"] and bounds["from"] > bounds["to"]:
        raise ValidationError("dateRange.from must not be after dateRange.to")
    return DateWindow(start=bounds["from"], end=bounds["to"])


def parse_capital_value(value: Any) -> int | float:
    """Capital must be a finite, non-negative number (numeric strings accepted)."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("value must be a number")
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ValidationError("value must be a number")
    if isinstance(value, Decimal):
        value = float(value)
    if not isinstance(value, (int, float)):
        raise ValidationError("value must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError("value must be a finite number")
    if value < 0:
        raise ValidationError("value must be >= 0")
    if value > MAX_AMOUNT:
        raise ValidationError(f"value cannot exceed {MAX_AMOUNT}")
    return value
