"""Idea orderings, both as SQL ``ORDER BY`` clauses and for in-memory lists.

Every ordering ends with ``ideas.id`` ascending so that ties come back in a
stable order regardless of the database.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy import Select, case, func, literal

from ideaflow.enums import IdeaOrder, coerce
from ideaflow.lifecycle import STATE_RANKS
from ideaflow.models import Idea

UNSIZED_DENSITY = -1


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


def rating_density(idea: Idea) -> int:
    """``1000 * rating / (development_size + design_size)``, truncated toward zero.

    Unsized ideas score ``-1`` so they sort after every sized one.
    """
    if not idea.sized:
        return UNSIZED_DENSITY
    numerator = 1000 * (idea.rating or 0)
    quotient = abs(numerator) // (idea.development_size + idea.design_size)
    return quotient if numerator >= 0 else -quotient


def combined_size(idea: Idea) -> int | None:
    if not idea.sized:
        return None
    return idea.development_size + idea.design_size


def rating_density_expr():
    # Integer operands: SQLite and PostgreSQL truncate, matching rating_density().
    total = Idea.development_size + Idea.design_size
    return func.coalesce((literal(1000) * Idea.rating) // total, UNSIZED_DENSITY)


def progress_expr():
    return case(
        {state.value: rank for state, rank in STATE_RANKS.items()},
        value=Idea.state,
        else_=-1,
    )


def size_expr():
    return Idea.development_size + Idea.design_size


# ---------------------------------------------------------------------------
# SQL orderings
# ---------------------------------------------------------------------------


def by_rating(stmt: Select) -> Select:
    return stmt.order_by(rating_density_expr().desc(), Idea.id)


def by_activity(stmt: Select) -> Select:
    return stmt.order_by(Idea.active_at.desc().nulls_last(), Idea.id)


def by_progress(stmt: Select) -> Select:
    return stmt.order_by(progress_expr().desc(), Idea.id)


def by_creation(stmt: Select) -> Select:
    return stmt.order_by(Idea.created_at.desc(), Idea.id)


def by_size(stmt: Select) -> Select:
    return stmt.order_by(size_expr().asc().nulls_last(), Idea.id)


ORDERS: dict[IdeaOrder, Callable[[Select], Select]] = {
    IdeaOrder.RATING: by_rating,
    IdeaOrder.ACTIVITY: by_activity,
    IdeaOrder.PROGRESS: by_progress,
    IdeaOrder.CREATION: by_creation,
    IdeaOrder.SIZE: by_size,
}


def order_ideas(stmt: Select, order: str | IdeaOrder) -> Select:
    return ORDERS[coerce(IdeaOrder, order, "order")](stmt)


# ---------------------------------------------------------------------------
# In-memory orderings
# ---------------------------------------------------------------------------


def sort_ideas(ideas: Iterable[Idea], order: str | IdeaOrder) -> list[Idea]:
    """Sort already-loaded ideas the same way :func:`order_ideas` would."""
    order = coerce(IdeaOrder, order, "order")
    items = sorted(ideas, key=lambda i: i.id)

    # list.sort is stable even with reverse=True, so the id order above
    # survives as the tie-break.
    if order is IdeaOrder.RATING:
        items.sort(key=rating_density, reverse=True)
    elif order is IdeaOrder.ACTIVITY:
        items.sort(key=lambda i: i.active_at or datetime.min, reverse=True)
    elif order is IdeaOrder.PROGRESS:
        items.sort(key=lambda i: i.state.rank, reverse=True)
    elif order is IdeaOrder.CREATION:
        items.sort(key=lambda i: i.created_at or datetime.min, reverse=True)
    else:
        items.sort(key=lambda i: (combined_size(i) is None, combined_size(i) or 0))
    return items
