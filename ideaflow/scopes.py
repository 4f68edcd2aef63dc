"""Select builders for idea worklists and filters.

Worklists start a query from the acting user ("what can this user vet?");
filters and the category filter narrow an existing one.
"""
from __future__ import annotations

from typing import Callable

from sqlalchemy import Select, select

from ideaflow.enums import IdeaFilter, IdeaOrder, coerce
from ideaflow.lifecycle import IdeaState, eligible_states
from ideaflow.models import Bookmark, Comment, Idea, User, Vetting, Vote
from ideaflow.ordering import order_ideas

# ---------------------------------------------------------------------------
# Worklists
# ---------------------------------------------------------------------------


def discussable_by(user: User) -> Select:
    return select(Idea).where(Idea.account_id == user.account_id)


def with_state(stmt: Select, *states: IdeaState) -> Select:
    return stmt.where(Idea.state.in_([s.value for s in states]))


def worklist_for(user: User, worklist: str) -> Select:
    return with_state(discussable_by(user), *sorted(eligible_states(worklist), key=lambda s: s.rank))


def vettable_by(user: User) -> Select:
    return worklist_for(user, "vettable")


def votable_by(user: User) -> Select:
    return worklist_for(user, "votable")


def pickable_by(user: User) -> Select:
    return worklist_for(user, "pickable")


def approvable_by(user: User) -> Select:
    return worklist_for(user, "approvable")


def signoffable_by(user: User) -> Select:
    return worklist_for(user, "signoffable")


def buildable_by(user: User) -> Select:
    return worklist_for(user, "buildable")


def followed_by(user: User) -> Select:
    return select(Idea).join(Bookmark, Bookmark.idea_id == Idea.id).where(Bookmark.user_id == user.id)


def managed_by(user: User) -> Select:
    return discussable_by(user).where(Idea.product_manager_id == user.id)


def not_vetted_by(user: User, stmt: Select | None = None) -> Select:
    stmt = discussable_by(user) if stmt is None else stmt
    return stmt.where(Idea.id.not_in(select(Vetting.idea_id).where(Vetting.user_id == user.id)))


ANGLES: dict[str, Callable[[User], Select]] = {
    "discussable": discussable_by,
    "vettable": vettable_by,
    "votable": votable_by,
    "pickable": pickable_by,
    "approvable": approvable_by,
    "signoffable": signoffable_by,
    "buildable": buildable_by,
    "followed": followed_by,
    "managed": managed_by,
}

# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def authored_by(stmt: Select, user: User) -> Select:
    return stmt.where(Idea.author_id == user.id)


def commented_by(stmt: Select, user: User) -> Select:
    return stmt.join(Comment, Comment.idea_id == Idea.id).where(Comment.author_id == user.id).group_by(Idea.id)


def vetted_by(stmt: Select, user: User) -> Select:
    return stmt.join(Vetting, Vetting.idea_id == Idea.id).where(Vetting.user_id == user.id).group_by(Idea.id)


def backed_by(stmt: Select, user: User) -> Select:
    return stmt.join(Vote, Vote.idea_id == Idea.id).where(Vote.user_id == user.id).group_by(Idea.id)


FILTERS: dict[IdeaFilter, Callable[[Select, User], Select] | None] = {
    IdeaFilter.ALL: None,
    IdeaFilter.AUTHORED: authored_by,
    IdeaFilter.COMMENTED: commented_by,
    IdeaFilter.VETTED: vetted_by,
    IdeaFilter.BACKED: backed_by,
}


def apply_filter(stmt: Select, user: User, filter: str | IdeaFilter) -> Select:
    fn = FILTERS[coerce(IdeaFilter, filter, "filter")]
    return stmt if fn is None else fn(stmt, user)


def apply_category(stmt: Select, category: str | None) -> Select:
    """``"all"`` (or nothing) keeps every idea, ``"none"`` keeps uncategorized ones."""
    if category in (None, "", "all"):
        return stmt
    if category == "none":
        return stmt.where(Idea.category.is_(None))
    return stmt.where(Idea.category == category)


def ideas_query(
    user: User, *, angle: str = "discussable", filter: str | IdeaFilter = IdeaFilter.ALL,
    category: str | None = "all", order: str | IdeaOrder = IdeaOrder.ACTIVITY,
) -> Select:
    try:
        start = ANGLES[angle]
    except KeyError:
        raise ValueError(f"Unknown angle: {angle!r}") from None
    stmt = apply_filter(start(user), user, filter)
    stmt = apply_category(stmt, category)
    return order_ideas(stmt, order)
