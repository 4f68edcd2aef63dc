from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from ideaflow import services
from ideaflow.lifecycle import IdeaState
from ideaflow.models import (
    STORED_FILE_MAX_BYTES, Account, Attachment, Bookmark, Comment, Idea, StoredFile, Vetting, Vote,
)


def _count(session, model, **where) -> int:
    stmt = select(func.count()).select_from(model)
    for column, value in where.items():
        stmt = stmt.where(getattr(model, column) == value)
    return session.execute(stmt).scalar_one()


class TestSizing:
    @pytest.mark.parametrize("design,development,sized,size", [
        (None, None, False, None),
        (2, None, False, None),
        (None, 3, False, None),
        (1, 1, True, 1),
        (2, 4, True, 4),
        (3, 2, True, 3),
    ])
    def test_sized_and_size(self, design, development, sized, size):
        idea = Idea(title="t", design_size=design, development_size=development)
        assert idea.sized is sized
        assert idea.size == size


class TestDefaults:
    def test_constructor_defaults(self):
        idea = Idea(title="t")
        assert idea.rating == 0
        assert idea.kind == "feature"
        assert idea.state is IdeaState.SUBMITTED

    def test_state_column_round_trips(self, session, make_idea):
        idea = make_idea("approved")
        session.commit()
        session.expire_all()
        reloaded = session.get(Idea, idea.id)
        assert reloaded.state is IdeaState.APPROVED
        stored = session.execute(select(Idea.state).where(Idea.id == idea.id)).scalar_one()
        assert stored == "approved"

    def test_account_categories(self, session, account):
        assert account.categories == ["infra", "growth"]
        account.categories = ["ops"]
        session.flush()
        assert session.get(Account, account.id).categories_json == '["ops"]'
        assert Account(name="x", categories_json="not json").categories == []


class TestActivity:
    def test_insert_stamps_timestamps(self, make_idea):
        idea = make_idea()
        assert idea.created_at is not None
        assert idea.updated_at is not None
        assert idea.active_at is not None
        assert idea.active_at >= idea.updated_at

    def test_update_advances_active_at(self, session, make_idea):
        idea = make_idea()
        before = idea.active_at
        idea.title = "Renamed"
        session.flush()
        assert idea.updated_at >= before
        assert idea.active_at == max(idea.updated_at, before)

    def test_ping_is_monotonic(self):
        idea = Idea(title="t")
        later = datetime(2030, 1, 2)
        idea.ping(later)
        idea.ping(later - timedelta(days=1))
        assert idea.active_at == later
        idea.ping(later + timedelta(seconds=1))
        assert idea.active_at == later + timedelta(seconds=1)

    def test_touch_keeps_newer_activity(self):
        idea = Idea(title="t")
        future = datetime(2099, 1, 1)
        idea.ping(future)
        idea.touch(datetime(2030, 1, 1))
        assert idea.updated_at == datetime(2030, 1, 1)
        assert idea.active_at == future

    def test_touch_keeps_existing_created_at(self):
        idea = Idea(title="t", created_at=datetime(2020, 5, 1))
        idea.touch(datetime(2030, 1, 1))
        assert idea.created_at == datetime(2020, 5, 1)

    def test_bookmarks_leave_timestamps_alone(self, session, make_idea, bob):
        idea = make_idea()
        before = (idea.updated_at, idea.active_at)

        services.bookmark(session, idea, bob)
        session.flush()
        assert (idea.updated_at, idea.active_at) == before

        services.unbookmark(session, idea, bob)
        session.flush()
        assert (idea.updated_at, idea.active_at) == before

    def test_flush_keeps_future_activity(self, session, make_idea):
        idea = make_idea()
        future = datetime(2099, 1, 1)
        idea.ping(future)
        session.flush()
        assert idea.active_at == future


class TestAssociations:
    def test_participants_are_distinct_and_include_author(self, session, make_idea, alice, bob, carol):
        idea = make_idea(author=alice)
        services.vet_idea(session, idea, bob)
        services.back_idea(session, idea, bob)
        services.back_idea(session, idea, carol)
        services.comment_on(session, idea, carol, "Looks good")
        services.comment_on(session, idea, bob, "Agreed")
        session.flush()
        session.expire(idea)

        assert [u.name for u in idea.participants] == ["Alice", "Bob", "Carol"]
        assert {u.id for u in idea.backers} == {bob.id, carol.id}
        assert [u.id for u in idea.vetters] == [bob.id]
        assert {u.id for u in idea.commenters} == {bob.id, carol.id}

    def test_toplevel_comments_exclude_replies(self, session, make_idea, bob):
        idea = make_idea()
        root = services.comment_on(session, idea, bob, "Question?")
        session.flush()
        services.comment_on(session, idea, bob, "Answer.", parent=root)
        session.flush()
        session.expire(idea)

        assert [c.body for c in idea.comments] == ["Question?", "Answer."]
        assert [c.body for c in idea.toplevel_comments] == ["Question?"]
        assert [c.body for c in root.replies] == ["Answer."]

    def test_user_reverse_collections(self, session, make_idea, bob):
        idea = make_idea()
        services.vet_idea(session, idea, bob)
        services.bookmark(session, idea, bob)
        session.flush()
        session.expire(bob)
        assert [i.id for i in bob.vetted_ideas] == [idea.id]
        assert [i.id for i in bob.bookmarked_ideas] == [idea.id]

    def test_delete_cascades_dependents_but_keeps_comments(self, session, make_idea, bob, carol):
        idea = make_idea()
        services.vet_idea(session, idea, bob)
        services.back_idea(session, idea, carol)
        services.bookmark(session, idea, bob)
        services.attach_file(session, idea, filename="plan.txt", data=b"plan")
        services.comment_on(session, idea, carol, "Nice")
        session.flush()
        idea_id = idea.id

        session.delete(idea)
        session.flush()

        assert _count(session, Vetting, idea_id=idea_id) == 0
        assert _count(session, Vote, idea_id=idea_id) == 0
        assert _count(session, Bookmark, idea_id=idea_id) == 0
        assert _count(session, Attachment, idea_id=idea_id) == 0
        assert _count(session, StoredFile) == 0
        assert _count(session, Comment, idea_id=idea_id) == 1


class TestStoredFile:
    def test_limit_is_16_mib_minus_one(self):
        assert STORED_FILE_MAX_BYTES == 16_777_215

    def test_columns(self):
        columns = set(StoredFile.__table__.columns.keys())
        assert columns == {"id", "blob", "metadata", "accessed_at", "created_at", "updated_at"}
        for name in ("blob", "metadata", "accessed_at"):
            assert StoredFile.__table__.columns[name].nullable
