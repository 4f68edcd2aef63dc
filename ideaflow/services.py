"""Shared business logic for the CLI and any embedding application."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ideaflow.enums import IdeaFilter, IdeaKind, IdeaOrder, SizeField
from ideaflow.helpers import idea_size_human, idea_status
from ideaflow.lifecycle import WORKLISTS, IdeaState, InvalidTransition, fire, is_eligible
from ideaflow.models import (
    STORED_FILE_MAX_BYTES, Account, Attachment, Bookmark, Comment, Idea, StoredFile, User, Vetting, Vote,
)
from ideaflow.ordering import rating_density
from ideaflow.schemas import IdeaCreate, IdeaOut, IdeaUpdate
from ideaflow.scopes import ideas_query, worklist_for
from ideaflow.utils import json_parse, to_json, utc_now

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared field tuples
# ---------------------------------------------------------------------------

REQUIRED_TEXT_FIELDS = ("title", "problem", "solution", "metrics")

UPDATABLE_FIELDS = (
    "title", "problem", "solution", "metrics", "kind", "category",
    "design_size", "development_size", "rating", "deadline", "product_manager_id",
)

BLANK = "can't be blank"
NOT_INCLUDED = "is not included in the list"

SIZE_RANGE = range(1, 5)

Errors = dict[str, list[str]]

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_idea(idea: Idea, account: Account | None = None) -> Errors:
    """Return field-level error messages for ``idea``; empty when it may be saved."""
    errors: Errors = {}

    def add(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    account = account or idea.account
    if idea.author_id is None and idea.author is None:
        add("author", BLANK)
    if idea.account_id is None and account is None:
        add("account", BLANK)
    if idea.rating is None:
        add("rating", BLANK)
    for field in REQUIRED_TEXT_FIELDS:
        value = getattr(idea, field)
        if value is None or not str(value).strip():
            add(field, BLANK)
    for field in SizeField:
        value = getattr(idea, field.value)
        if value is not None and value not in SIZE_RANGE:
            add(field.value, NOT_INCLUDED)
    if idea.kind not in {k.value for k in IdeaKind}:
        add("kind", NOT_INCLUDED)
    if idea.category is not None and account is not None and idea.category not in account.categories:
        add("category", NOT_INCLUDED)
    return errors


def validation_errors(exc: ValidationError) -> Errors:
    """Flatten a pydantic ``ValidationError`` into the same field -> messages shape."""
    errors: Errors = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "base"
        errors.setdefault(field, []).append(err["msg"])
    return errors


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def idea_summary(idea: Idea) -> dict:
    return IdeaOut.model_validate({
        "id": idea.id, "title": idea.title, "kind": idea.kind, "category": idea.category,
        "state": idea.state.value, "state_label": idea_status(idea.state),
        "rating": idea.rating,
        "design_size": idea.design_size, "development_size": idea.development_size,
        "sized": idea.sized, "size": idea.size,
        "size_label": idea_size_human(idea.size) if idea.sized else None,
        "rating_density": rating_density(idea),
        "author_id": idea.author_id, "product_manager_id": idea.product_manager_id,
        "created_at": idea.created_at.isoformat() if idea.created_at else None,
        "active_at": idea.active_at.isoformat() if idea.active_at else None,
    }).model_dump()


def get_entity(session: Session, model, entity_id: int):
    return session.execute(select(model).where(model.id == entity_id)).scalars().first()


# ---------------------------------------------------------------------------
# Mutation helpers
# ---------------------------------------------------------------------------


def apply_updates(obj, updates: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    """Apply the values present in ``updates`` (``None`` included) to an ORM object.

    Returns the previous values of the fields that were touched.
    """
    previous: dict[str, Any] = {}
    for field in fields:
        if field in updates:
            previous[field] = getattr(obj, field)
            setattr(obj, field, updates[field])
    return previous


def create_idea(session: Session, author: User, payload: dict[str, Any]) -> tuple[Idea | None, Errors]:
    """Create an idea for ``author``'s account; nothing is added when errors are returned."""
    try:
        data = IdeaCreate.model_validate(payload)
    except ValidationError as exc:
        errors = validation_errors(exc)
        log.warning("Rejected idea from user %s: %s", author.id, errors)
        return None, errors

    idea = Idea(
        account_id=author.account_id, author_id=author.id,
        title=data.title, problem=data.problem, solution=data.solution, metrics=data.metrics,
        kind=data.kind.value, category=data.category,
        design_size=data.design_size, development_size=data.development_size,
        rating=data.rating, deadline=data.deadline, product_manager_id=data.product_manager_id,
    )
    errors = validate_idea(idea, account=author.account)
    if errors:
        log.warning("Rejected idea from user %s: %s", author.id, errors)
        return None, errors

    session.add(idea)
    session.flush()
    log.info("Created idea %s: %s", idea.id, idea.title)
    return idea, {}


def update_idea(session: Session, idea: Idea, payload: dict[str, Any]) -> Errors:
    """Apply a partial update; on errors the idea is left as it was (caller must commit)."""
    try:
        data = IdeaUpdate.model_validate(payload)
    except ValidationError as exc:
        return validation_errors(exc)

    # Only keys the caller sent; an explicit None clears the field.
    updates = data.model_dump(exclude_unset=True)
    if data.kind is not None:
        updates["kind"] = data.kind.value
    previous = apply_updates(idea, updates, UPDATABLE_FIELDS)
    errors = validate_idea(idea)
    if errors:
        for field, value in previous.items():
            setattr(idea, field, value)
        log.warning("Rejected update of idea %s: %s", idea.id, errors)
        return errors
    if previous:
        log.info("Updated idea %s: %s", idea.id, ", ".join(sorted(previous)))
    return {}


# ---------------------------------------------------------------------------
# Participation (each call records activity on the idea; caller must commit)
# ---------------------------------------------------------------------------


def vet_idea(session: Session, idea: Idea, user: User) -> Vetting:
    if not is_eligible(idea.state, "vettable"):
        raise InvalidTransition(idea.state, "vet")
    vetting = Vetting(idea=idea, user=user)
    session.add(vetting)
    fire(idea, "vet")
    idea.ping()
    return vetting


def back_idea(session: Session, idea: Idea, user: User) -> Vote:
    """Back ``idea``; the first backing moves a vetted idea to voted."""
    if not is_eligible(idea.state, "votable"):
        raise InvalidTransition(idea.state, "vote")
    existing = _find_by_user(idea.votes, user)
    if existing is not None:
        return existing
    vote = Vote(idea=idea, user=user)
    session.add(vote)
    if idea.state is IdeaState.VETTED:
        fire(idea, "vote")
    idea.ping()
    return vote


def comment_on(
    session: Session, idea: Idea, author: User, body: str, parent: Comment | None = None,
) -> Comment:
    if not body or not body.strip():
        raise ValueError("Comment body cannot be empty")
    if parent is not None and parent.idea_id != idea.id:
        raise ValueError("Parent comment belongs to another idea")
    comment = Comment(idea=idea, author=author, body=body.strip(), parent=parent)
    session.add(comment)
    idea.ping()
    return comment


def bookmark(session: Session, idea: Idea, user: User) -> Bookmark:
    existing = _find_by_user(idea.bookmarks, user)
    if existing is not None:
        return existing
    mark = Bookmark(idea=idea, user=user)
    session.add(mark)
    return mark


def unbookmark(session: Session, idea: Idea, user: User) -> bool:
    mark = _find_by_user(idea.bookmarks, user)
    if mark is None:
        return False
    # delete-orphan cascade removes the row on flush
    idea.bookmarks.remove(mark)
    return True


def _find_by_user(rows, user: User):
    # Collections include pending rows, which a SELECT would miss with autoflush off.
    return next((row for row in rows if row.user is user or row.user_id == user.id), None)


def transition(session: Session, idea: Idea, event: str, user: User | None = None) -> IdeaState:
    """Fire a lifecycle event. Vetting and backing also record who did it."""
    if event in ("vet", "vote"):
        if user is None:
            raise ValueError(f"Event {event!r} needs an acting user")
        if event == "vet":
            vet_idea(session, idea, user)
        else:
            back_idea(session, idea, user)
        return idea.state
    return fire(idea, event)


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------


def attach_file(
    session: Session, idea: Idea, *, filename: str, data: bytes,
    content_type: str = "application/octet-stream", metadata: dict[str, Any] | None = None,
) -> Attachment:
    if len(data) > STORED_FILE_MAX_BYTES:
        raise ValueError(f"Attachment {filename!r} exceeds {STORED_FILE_MAX_BYTES} bytes")
    stored = StoredFile(blob=data, metadata_json=to_json(metadata or {}))
    attachment = Attachment(filename=filename, content_type=content_type, stored_file=stored)
    idea.attachments.append(attachment)
    idea.ping()
    return attachment


def read_attachment(attachment: Attachment) -> tuple[bytes, dict[str, Any]]:
    """Return the payload and metadata, stamping the file's ``accessed_at``."""
    stored = attachment.stored_file
    stored.accessed_at = utc_now()
    return stored.blob or b"", json_parse(stored.metadata_json, {})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def list_ideas(
    session: Session, user: User, *, angle: str = "discussable",
    filter: str | IdeaFilter = IdeaFilter.ALL, category: str | None = "all",
    order: str | IdeaOrder = IdeaOrder.ACTIVITY, limit: int | None = None,
) -> list[Idea]:
    stmt = ideas_query(user, angle=angle, filter=filter, category=category, order=order)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.execute(stmt).scalars().all())


def compute_stats(session: Session, user: User) -> dict:
    rows = session.execute(
        select(Idea.state, func.count(Idea.id))
        .where(Idea.account_id == user.account_id)
        .group_by(Idea.state)
    ).all()
    by_state: Counter[str] = Counter({state: count for state, count in rows})
    worklists = {}
    for name in WORKLISTS:
        stmt = worklist_for(user, name).with_only_columns(func.count(Idea.id))
        worklists[name] = session.execute(stmt).scalar_one()
    return {
        "total": sum(by_state.values()),
        "by_state": {s.value: by_state.get(s.value, 0) for s in IdeaState},
        "worklists": worklists,
    }
