"""Closed value sets shared by the model, the query layer and the helpers."""
from __future__ import annotations

from enum import Enum, IntEnum


class IdeaKind(str, Enum):
    FEATURE = "feature"
    CHORE = "chore"
    BUG = "bug"


class Size(IntEnum):
    """T-shirt estimate for design or development effort."""

    XS = 1
    S = 2
    M = 3
    L = 4


class SizeField(str, Enum):
    DESIGN = "design_size"
    DEVELOPMENT = "development_size"


class IdeaOrder(str, Enum):
    RATING = "rating"
    ACTIVITY = "activity"
    PROGRESS = "progress"
    CREATION = "creation"
    SIZE = "size"


class IdeaFilter(str, Enum):
    ALL = "all"
    AUTHORED = "authored"
    COMMENTED = "commented"
    VETTED = "vetted"
    BACKED = "backed"


class IdeaView(str, Enum):
    CARDS = "cards"
    BOARD = "board"
    LIST = "list"


def coerce(enum_cls, value, label: str):
    """Return the ``enum_cls`` member for ``value`` or raise ``ValueError``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise ValueError(f"Unknown {label}: {value!r}") from None
