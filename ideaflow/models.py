from __future__ import annotations

import json
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, LargeBinary, String, Text, and_, event
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, object_session, relationship

from ideaflow.enums import IdeaKind
from ideaflow.lifecycle import INITIAL_STATE, IdeaState, is_state_in_future
from ideaflow.utils import json_parse, utc_now

STORED_FILE_MAX_BYTES = 16 * 1024 * 1024 - 1


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    categories_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    users: Mapped[list[User]] = relationship("User", back_populates="account")
    ideas: Mapped[list[Idea]] = relationship("Idea", back_populates="account")

    @property
    def categories(self) -> list[str]:
        return json_parse(self.categories_json, [])

    @categories.setter
    def categories(self, value: list[str]) -> None:
        self.categories_json = json.dumps(list(value))


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), default="")
    email: Mapped[str] = mapped_column(String(300), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    account: Mapped[Account] = relationship("Account", back_populates="users")
    authored_ideas: Mapped[list[Idea]] = relationship(
        "Idea", back_populates="author", foreign_keys="Idea.author_id",
    )
    vettings: Mapped[list[Vetting]] = relationship("Vetting", back_populates="user")
    votes: Mapped[list[Vote]] = relationship("Vote", back_populates="user")
    bookmarks: Mapped[list[Bookmark]] = relationship("Bookmark", back_populates="user")
    vetted_ideas: Mapped[list[Idea]] = relationship("Idea", secondary="vettings", viewonly=True)
    bookmarked_ideas: Mapped[list[Idea]] = relationship("Idea", secondary="bookmarks", viewonly=True)


class Idea(Base):
    __tablename__ = "ideas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False)
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    product_manager_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    problem: Mapped[str] = mapped_column(Text, nullable=False)
    solution: Mapped[str] = mapped_column(Text, nullable=False)
    metrics: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), default=IdeaKind.FEATURE.value, nullable=False)
    category: Mapped[str | None] = mapped_column(String(200), nullable=True)
    design_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    development_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    _state: Mapped[str] = mapped_column("state", String(20), default=INITIAL_STATE.value, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    active_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    account: Mapped[Account] = relationship("Account", back_populates="ideas")
    author: Mapped[User] = relationship("User", back_populates="authored_ideas", foreign_keys=[author_id])
    product_manager: Mapped[User | None] = relationship("User", foreign_keys=[product_manager_id])

    vettings: Mapped[list[Vetting]] = relationship("Vetting", back_populates="idea", cascade="all, delete-orphan")
    votes: Mapped[list[Vote]] = relationship("Vote", back_populates="idea", cascade="all, delete-orphan")
    attachments: Mapped[list[Attachment]] = relationship(
        "Attachment", back_populates="idea", cascade="all, delete-orphan",
    )
    bookmarks: Mapped[list[Bookmark]] = relationship("Bookmark", back_populates="idea", cascade="all, delete-orphan")
    # Comments outlive their idea.
    comments: Mapped[list[Comment]] = relationship(
        "Comment", back_populates="idea", passive_deletes="all", order_by="Comment.id",
    )
    toplevel_comments: Mapped[list[Comment]] = relationship(
        "Comment",
        primaryjoin=lambda: and_(Comment.idea_id == Idea.id, Comment.parent_id.is_(None)),
        viewonly=True,
        order_by="Comment.id",
    )

    commenters: Mapped[list[User]] = relationship(
        "User", secondary="comments", viewonly=True,
        primaryjoin="Idea.id == Comment.idea_id", secondaryjoin="Comment.author_id == User.id",
    )
    vetters: Mapped[list[User]] = relationship("User", secondary="vettings", viewonly=True)
    backers: Mapped[list[User]] = relationship("User", secondary="votes", viewonly=True)
    bookmarkers: Mapped[list[User]] = relationship("User", secondary="bookmarks", viewonly=True)

    def __init__(self, **kwargs):
        kwargs.setdefault("rating", 0)
        kwargs.setdefault("kind", IdeaKind.FEATURE.value)
        kwargs.setdefault("_state", INITIAL_STATE.value)
        super().__init__(**kwargs)

    @hybrid_property
    def state(self) -> IdeaState:
        return IdeaState(self._state)

    @state.expression
    def state(cls):
        return cls._state

    def is_state_in_future(self, target) -> bool:
        return is_state_in_future(self.state, target)

    @property
    def sized(self) -> bool:
        return self.design_size is not None and self.development_size is not None

    @property
    def size(self) -> int | None:
        if not self.sized:
            return None
        return max(self.design_size, self.development_size)

    @property
    def participants(self) -> list[User]:
        """Distinct backers, vetters, commenters and the author, by id."""
        people = {u.id: u for u in (*self.backers, *self.vetters, *self.commenters)}
        if self.author is not None:
            people[self.author.id] = self.author
        return [people[k] for k in sorted(people)]

    def ping(self, at: datetime | None = None) -> None:
        """Record activity on the idea or one of its dependents."""
        at = at or utc_now()
        if self.active_at is None or at > self.active_at:
            self.active_at = at

    def touch(self, at: datetime | None = None) -> None:
        at = at or utc_now()
        if self.created_at is None:
            self.created_at = at
        self.updated_at = at
        if self.active_at is None or self.updated_at > self.active_at:
            self.active_at = self.updated_at


@event.listens_for(Idea, "before_insert")
def _stamp_new_idea(mapper, connection, target: Idea) -> None:
    target.touch()


@event.listens_for(Idea, "before_update")
def _advance_activity(mapper, connection, target: Idea) -> None:
    # Collection-only changes (bookmarks) also trigger before_update.
    if object_session(target).is_modified(target, include_collections=False):
        target.touch()


class Vetting(Base):
    __tablename__ = "vettings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(Integer, ForeignKey("ideas.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="vettings")
    user: Mapped[User] = relationship("User", back_populates="vettings")


class Vote(Base):
    __tablename__ = "votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(Integer, ForeignKey("ideas.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="votes")
    user: Mapped[User] = relationship("User", back_populates="votes")


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(Integer, ForeignKey("ideas.id"), nullable=False)
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("comments.id"), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="comments")
    author: Mapped[User] = relationship("User")
    parent: Mapped[Comment | None] = relationship("Comment", remote_side=[id], back_populates="replies")
    replies: Mapped[list[Comment]] = relationship("Comment", back_populates="parent")


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(Integer, ForeignKey("ideas.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="bookmarks")
    user: Mapped[User] = relationship("User", back_populates="bookmarks")


class StoredFile(Base):
    __tablename__ = "stored_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    blob: Mapped[bytes | None] = mapped_column(LargeBinary(STORED_FILE_MAX_BYTES), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)
    accessed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)


class Attachment(Base):
    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(Integer, ForeignKey("ideas.id"), nullable=False)
    stored_file_id: Mapped[int] = mapped_column(Integer, ForeignKey("stored_files.id"), nullable=False)
    filename: Mapped[str] = mapped_column(String(300), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), default="application/octet-stream")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    idea: Mapped[Idea] = relationship("Idea", back_populates="attachments")
    stored_file: Mapped[StoredFile] = relationship("StoredFile", cascade="all, delete-orphan", single_parent=True)


class SchemaMigration(Base):
    __tablename__ = "schema_migrations"

    version: Mapped[str] = mapped_column(String(64), primary_key=True)
    applied_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
