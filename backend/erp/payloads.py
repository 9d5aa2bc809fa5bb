# Overview: Request-body normalization at the HTTP boundary.

"""
Clients send the same field as PascalCase (ProductID), camelCase (productId)
or snake_case (product_id), and IDs as 7 or "7". Route handlers call
canonical_keys() once and hand services a single snake_case shape with
integer IDs, so neither aliasing nor ID typing reaches business code.
"""

from __future__ import annotations

import re
from typing import Any

from .validation import IDENTIFIER_FIELDS, ValidationError, coerce_identifier

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_key(key: str) -> str:
    """ProductID / productId / product_id -> product_id."""
    return _WORD_BOUNDARY.sub("_", key.strip()).replace("-", "_").lower()


def canonical_keys(payload: Any) -> Any:
    """
    Recursively rewrite dict keys to snake_case and ID fields to int.

    Two aliases of the same field carrying different values are rejected
    rather than resolved by ordering.
    """
    if isinstance(payload, list):
        return [canonical_keys(item) for item in payload]
    if not isinstance(payload, dict):
        return payload

    out: dict[str, Any] = {}
    sources: dict[str, str] = {}
    for raw_key, value in payload.items():
        key = snake_key(str(raw_key))
        value = canonical_keys(value)
        if key in IDENTIFIER_FIELDS:
            value = coerce_identifier(str(raw_key), value)
        if key in out and out[key] != value:
            raise ValidationError(
                f"Conflicting values for {sources[key]} and {raw_key}",
                {"field": key},
            )
        out[key] = value
        sources[key] = str(raw_key)
    return out


def request_body(raw: Any) -> dict:
    """Canonical body for a JSON object request; anything else is a 400."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("Invalid JSON payload")
    return canonical_keys(raw)


def query_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")
