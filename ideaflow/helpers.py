"""Labels, icons and tooltips for ideas.

Every lookup covers its whole enumeration and raises ``ValueError`` for
anything outside it.
"""
from __future__ import annotations

from ideaflow.enums import IdeaFilter, IdeaKind, IdeaOrder, IdeaView, Size, SizeField, coerce
from ideaflow.i18n import _, s_
from ideaflow.lifecycle import IdeaState, coerce_state
from ideaflow.models import Idea, User

IDEA_ICONS: dict[IdeaKind, str] = {
    IdeaKind.BUG: "icon-fire",
    IdeaKind.CHORE: "icon-bar-chart",
    IdeaKind.FEATURE: "icon-beaker",
}

IDEA_KIND_LABELS: dict[IdeaKind, str] = {
    IdeaKind.FEATURE: "Idea|Feature",
    IdeaKind.CHORE: "Idea|Chore",
    IdeaKind.BUG: "Idea|Bug",
}

# (short, long)
SIZE_LABELS: dict[Size, tuple[str, str]] = {
    Size.XS: ("T-shirt size|XS", "T-shirt size|Extra-small"),
    Size.S: ("T-shirt size|S", "T-shirt size|Small"),
    Size.M: ("T-shirt size|M", "T-shirt size|Medium"),
    Size.L: ("T-shirt size|L", "T-shirt size|Large"),
}

STATE_LABELS: dict[IdeaState, str] = {
    IdeaState.SUBMITTED: "Idea state|submitted",
    IdeaState.VETTED: "Idea state|vetted",
    IdeaState.VOTED: "Idea state|voted",
    IdeaState.PICKED: "Idea state|picked",
    IdeaState.DESIGNED: "Idea state|designed",
    IdeaState.APPROVED: "Idea state|approved",
    IdeaState.IMPLEMENTED: "Idea state|implemented",
    IdeaState.SIGNED_OFF: "Idea state|signed off",
    IdeaState.LIVE: "Idea state|live",
}

SIZE_FIELD_LABELS: dict[SizeField, str] = {
    SizeField.DESIGN: "Idea size|Design size",
    SizeField.DEVELOPMENT: "Idea size|Development size",
}

ORDER_LABELS: dict[IdeaOrder, str] = {
    IdeaOrder.RATING: "Sort by rating",
    IdeaOrder.ACTIVITY: "Sort by activity",
    IdeaOrder.PROGRESS: "Sort by progress",
    IdeaOrder.CREATION: "Sort by creation",
    IdeaOrder.SIZE: "Sort by size",
}

FILTER_LABELS: dict[IdeaFilter, str] = {
    IdeaFilter.ALL: "Unfiltered",
    IdeaFilter.AUTHORED: "Your ideas",
    IdeaFilter.COMMENTED: "Commented by you",
    IdeaFilter.VETTED: "Vetted by you",
    IdeaFilter.BACKED: "Backed by you",
}

FILTER_QUALIFIERS: dict[IdeaFilter, str | None] = {
    IdeaFilter.ALL: None,
    IdeaFilter.AUTHORED: "that you authored",
    IdeaFilter.COMMENTED: "that you commented",
    IdeaFilter.VETTED: "that you vetted",
    IdeaFilter.BACKED: "that you backed",
}

VIEW_ICONS: dict[IdeaView, str] = {
    IdeaView.CARDS: "icon-list-alt",
    IdeaView.BOARD: "icon-columns",
    IdeaView.LIST: "icon-table",
}


# ---------------------------------------------------------------------------
# Kinds and categories
# ---------------------------------------------------------------------------


def idea_kind_icon(kind: str | IdeaKind) -> str:
    return IDEA_ICONS[coerce(IdeaKind, kind, "idea kind")]


def idea_kind_select_options() -> list[tuple[str, str]]:
    return [(s_(IDEA_KIND_LABELS[kind]), kind.value) for kind in IdeaKind]


def idea_category_select_options(user: User) -> list[tuple[str, str]]:
    return [(category, category) for category in sorted(user.account.categories)]


# ---------------------------------------------------------------------------
# Sizes and states
# ---------------------------------------------------------------------------


def idea_size_human(size: int | Size) -> str:
    return s_(SIZE_LABELS[coerce(Size, size, "size")][0])


def idea_size_human_long(size: int | Size) -> str:
    return s_(SIZE_LABELS[coerce(Size, size, "size")][1])


def idea_size_type_name(field: str | SizeField) -> str:
    return s_(SIZE_FIELD_LABELS[coerce(SizeField, field, "size field")])


def idea_status(state: str | IdeaState) -> str:
    return s_(STATE_LABELS[coerce_state(state)])


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------


def idea_order_human(order: str | IdeaOrder) -> str:
    return _(ORDER_LABELS[coerce(IdeaOrder, order, "order")])


def idea_filter_human(filter: str | IdeaFilter) -> str:
    return _(FILTER_LABELS[coerce(IdeaFilter, filter, "filter")])


def idea_view_icon(view: str | IdeaView) -> str:
    return VIEW_ICONS[coerce(IdeaView, view, "view")]


def ideas_filter_qualifier(filter: str | IdeaFilter) -> str | None:
    qualifier = FILTER_QUALIFIERS[coerce(IdeaFilter, filter, "filter")]
    return _(qualifier) if qualifier else None


def ideas_category_qualifier(category: str) -> str | None:
    if category == "none":
        return _("without a category")
    if category == "all":
        return None
    return _('in the "%{category}" category', category=category)


# ---------------------------------------------------------------------------
# Tooltips
# ---------------------------------------------------------------------------


def idea_unavailable_action_tooltip(idea: Idea, state: str | IdeaState) -> str:
    """Explain why the action leading to ``state`` is not offered for ``idea``."""
    state = coerce_state(state)
    if idea.is_state_in_future(state):
        if state is IdeaState.VETTED:
            return s_("Tooltip|This idea cannot be vetted yet.")
        if state is IdeaState.VOTED:
            return s_("Tooltip|This idea cannot be backed yet.")
        return s_("Tooltip|This idea cannot be marked as %{state} yet.", state=idea_status(state))

    if state is IdeaState.VETTED:
        return s_("Tooltip|This idea has already been vetted.")
    if state is IdeaState.VOTED:
        return s_("Tooltip|This idea cannot be backed anymore.")
    return s_("Tooltip|This idea has already been %{state}.", state=idea_status(state))
