from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ideaflow.lifecycle import IdeaState, advance, coerce_state
from ideaflow.models import Account, Base, Idea, User

# ---------------------------------------------------------------------------
# Fixtures: in-memory SQLite database
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture()
def session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    sess = SessionLocal()
    try:
        yield sess
    finally:
        sess.close()


@pytest.fixture()
def account(session: Session) -> Account:
    acc = Account(name="Acme", categories=["infra", "growth"])
    session.add(acc)
    session.flush()
    return acc


@pytest.fixture()
def other_account(session: Session) -> Account:
    acc = Account(name="Globex", categories=["sales"])
    session.add(acc)
    session.flush()
    return acc


def _user(session: Session, account: Account, name: str) -> User:
    user = User(account=account, name=name, email=f"{name.lower()}@example.com")
    session.add(user)
    session.flush()
    return user


@pytest.fixture()
def alice(session, account) -> User:
    return _user(session, account, "Alice")


@pytest.fixture()
def bob(session, account) -> User:
    return _user(session, account, "Bob")


@pytest.fixture()
def carol(session, account) -> User:
    return _user(session, account, "Carol")


@pytest.fixture()
def outsider(session, other_account) -> User:
    return _user(session, other_account, "Dave")


@pytest.fixture()
def make_idea(session, alice):
    """Factory: a flushed idea moved forward to ``state`` through real transitions."""
    counter = {"n": 0}

    def _make(state: str | IdeaState = IdeaState.SUBMITTED, author: User | None = None, **fields) -> Idea:
        counter["n"] += 1
        author = author or alice
        data = {
            "title": f"Idea {counter['n']}",
            "problem": "Reports take too long",
            "solution": "Cache the aggregates",
            "metrics": "p95 under 2s",
            **fields,
        }
        idea = Idea(account_id=author.account_id, author_id=author.id, **data)
        session.add(idea)
        session.flush()
        target = coerce_state(state)
        while idea.state.rank < target.rank:
            advance(idea)
        session.flush()
        return idea

    return _make
