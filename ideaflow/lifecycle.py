"""Idea lifecycle: ordered states, explicit transitions, and worklist eligibility.

An idea moves along a single line:

    submitted → vetted → voted → picked → designed → approved
              → implemented → signed_off → live

Each state has an explicit integer rank; comparisons ("is this state still
ahead of the idea?") and progress ordering use the rank, never the name.
State only changes through :func:`fire`, which accepts the named events in
:data:`TRANSITIONS` and rejects everything else.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from ideaflow.enums import coerce

log = logging.getLogger(__name__)


class IdeaState(str, Enum):
    SUBMITTED = "submitted"
    VETTED = "vetted"
    VOTED = "voted"
    PICKED = "picked"
    DESIGNED = "designed"
    APPROVED = "approved"
    IMPLEMENTED = "implemented"
    SIGNED_OFF = "signed_off"
    LIVE = "live"

    @property
    def rank(self) -> int:
        return STATE_RANKS[self]


STATE_RANKS: dict[IdeaState, int] = {
    IdeaState.SUBMITTED: 0,
    IdeaState.VETTED: 1,
    IdeaState.VOTED: 2,
    IdeaState.PICKED: 3,
    IdeaState.DESIGNED: 4,
    IdeaState.APPROVED: 5,
    IdeaState.IMPLEMENTED: 6,
    IdeaState.SIGNED_OFF: 7,
    IdeaState.LIVE: 8,
}

INITIAL_STATE = IdeaState.SUBMITTED

# event -> (required current state, resulting state)
TRANSITIONS: dict[str, tuple[IdeaState, IdeaState]] = {
    "vet": (IdeaState.SUBMITTED, IdeaState.VETTED),
    "vote": (IdeaState.VETTED, IdeaState.VOTED),
    "pick": (IdeaState.VOTED, IdeaState.PICKED),
    "design": (IdeaState.PICKED, IdeaState.DESIGNED),
    "approve": (IdeaState.DESIGNED, IdeaState.APPROVED),
    "implement": (IdeaState.APPROVED, IdeaState.IMPLEMENTED),
    "sign_off": (IdeaState.IMPLEMENTED, IdeaState.SIGNED_OFF),
    "go_live": (IdeaState.SIGNED_OFF, IdeaState.LIVE),
}

NEXT_EVENT: dict[IdeaState, str] = {source: event for event, (source, _) in TRANSITIONS.items()}

WORKLISTS: dict[str, frozenset[IdeaState]] = {
    "vettable": frozenset({IdeaState.SUBMITTED}),
    "votable": frozenset({IdeaState.VETTED, IdeaState.VOTED}),
    "pickable": frozenset({IdeaState.VOTED}),
    "approvable": frozenset({IdeaState.DESIGNED}),
    "signoffable": frozenset({IdeaState.IMPLEMENTED}),
    "buildable": frozenset({
        IdeaState.PICKED, IdeaState.DESIGNED, IdeaState.APPROVED,
        IdeaState.IMPLEMENTED, IdeaState.SIGNED_OFF,
    }),
}


class InvalidTransition(ValueError):
    """An event was fired from a state that does not allow it."""

    def __init__(self, state: IdeaState, event: str):
        super().__init__(f"Cannot {event} an idea in state '{state.value}'")
        self.state = state
        self.event = event


def coerce_state(value: Any) -> IdeaState:
    return coerce(IdeaState, value, "idea state")


def is_state_in_future(current: Any, target: Any) -> bool:
    """True iff ``target`` comes strictly after ``current`` in the lifecycle."""
    return coerce_state(target).rank > coerce_state(current).rank


def can_fire(state: Any, event: str) -> bool:
    transition = TRANSITIONS.get(event)
    return transition is not None and transition[0] is coerce_state(state)


def fire(idea, event: str) -> IdeaState:
    """Apply ``event`` to ``idea`` and return the new state.

    Raises ``ValueError`` for unknown events and :class:`InvalidTransition`
    when the idea is not in the event's source state.
    """
    if event not in TRANSITIONS:
        raise ValueError(f"Unknown lifecycle event: {event!r}")
    source, target = TRANSITIONS[event]
    current = idea.state
    if current is not source:
        raise InvalidTransition(current, event)
    idea._state = target.value
    log.info("Idea %s: %s -> %s (%s)", idea.id, source.value, target.value, event)
    return target


def advance(idea) -> IdeaState | None:
    """Fire the next event on the happy path; ``None`` once the idea is live."""
    event = NEXT_EVENT.get(idea.state)
    if event is None:
        log.debug("Idea %s is already %s", idea.id, idea.state.value)
        return None
    return fire(idea, event)


def eligible_states(worklist: str) -> frozenset[IdeaState]:
    try:
        return WORKLISTS[worklist]
    except KeyError:
        raise ValueError(f"Unknown worklist: {worklist!r}") from None


def is_eligible(state: Any, worklist: str) -> bool:
    return coerce_state(state) in eligible_states(worklist)
