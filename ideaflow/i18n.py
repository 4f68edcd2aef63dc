"""Message lookup for user-facing strings.

Message ids are the English text. ``s_`` ids carry a context prefix
(``"Tooltip|This idea has already been vetted."``) which is dropped when the
catalog has no translation for the id.
"""
from __future__ import annotations

import logging
from typing import Any

from ideaflow.utils import interpolate

log = logging.getLogger(__name__)

_catalog: dict[str, str] = {}


def load_catalog(messages: dict[str, str]) -> None:
    """Register translations, keyed by message id."""
    _catalog.update(messages)
    log.debug("Loaded %d messages (%d total)", len(messages), len(_catalog))


def reset_catalog() -> None:
    _catalog.clear()


def _(msgid: str, **params: Any) -> str:
    return interpolate(_catalog.get(msgid, msgid), params)


def s_(msgid: str, **params: Any) -> str:
    text = _catalog.get(msgid)
    if text is None:
        text = msgid.split("|", 1)[-1]
    return interpolate(text, params)
