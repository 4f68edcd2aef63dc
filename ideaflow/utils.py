"""Shared utility functions used across ideaflow modules."""
from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from typing import Any

_MISSING = object()

_PLACEHOLDER_RE = re.compile(r"%\{(\w+)\}")


def utc_now() -> datetime:
    # SQLite drops tzinfo on the way back, so timestamps stay naive UTC throughout.
    return datetime.now(tz=UTC).replace(tzinfo=None)


def json_parse(value: str | None, default: Any = _MISSING) -> Any:
    """Safely parse a JSON string, returning *default* on failure.

    If no default is given, returns ``{}`` on parse error.
    """
    try:
        return json.loads(value or "")
    except (json.JSONDecodeError, TypeError):
        return {} if default is _MISSING else default


def to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def interpolate(text: str, params: dict[str, Any]) -> str:
    """Replace ``%{name}`` placeholders. Missing parameters raise ``KeyError``."""
    return _PLACEHOLDER_RE.sub(lambda m: str(params[m.group(1)]), text)
