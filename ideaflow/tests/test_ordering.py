from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import select

from ideaflow.enums import IdeaOrder
from ideaflow.models import Idea
from ideaflow.ordering import (
    UNSIZED_DENSITY,
    combined_size,
    order_ideas,
    rating_density,
    sort_ideas,
)


def _ids(session, order):
    stmt = order_ideas(select(Idea), order)
    return [i.id for i in session.execute(stmt).scalars().all()]


class TestRatingDensity:
    @pytest.mark.parametrize("rating,design,development,expected", [
        (6, 1, 2, 2000),
        (5, 2, 1, 1666),
        (0, 4, 4, 0),
        (-5, 2, 1, -1666),
        (1, 4, 4, 125),
    ])
    def test_sized(self, rating, design, development, expected):
        idea = Idea(title="t", rating=rating, design_size=design, development_size=development)
        assert rating_density(idea) == expected

    def test_unsized_scores_minus_one(self):
        assert rating_density(Idea(title="t", rating=50, design_size=2)) == UNSIZED_DENSITY == -1
        assert combined_size(Idea(title="t", development_size=2)) is None

    def test_sql_matches_python(self, session, make_idea):
        ideas = [
            make_idea(rating=6, design_size=1, development_size=2),
            make_idea(rating=5, design_size=2, development_size=1),
            make_idea(rating=100),
            make_idea(rating=-5, design_size=2, development_size=1),
        ]
        expected = [i.id for i in sorted(ideas, key=lambda i: (-rating_density(i), i.id))]
        assert _ids(session, "rating") == expected


class TestSqlOrderings:
    def test_rating_puts_unsized_after_sized(self, session, make_idea):
        low = make_idea(rating=1, design_size=4, development_size=4)
        unsized = make_idea(rating=1000)
        high = make_idea(rating=6, design_size=1, development_size=2)
        assert _ids(session, IdeaOrder.RATING) == [high.id, low.id, unsized.id]

    def test_rating_ties_break_by_id(self, session, make_idea):
        first = make_idea(rating=2, design_size=1, development_size=1)
        second = make_idea(rating=2, design_size=1, development_size=1)
        assert _ids(session, "rating") == [first.id, second.id]

    def test_activity_most_recent_first(self, session, make_idea):
        old, new, mid = make_idea(), make_idea(), make_idea()
        old.ping(datetime(2098, 1, 1))
        new.ping(datetime(2099, 6, 1))
        mid.ping(datetime(2099, 1, 1))
        session.flush()
        assert _ids(session, "activity") == [new.id, mid.id, old.id]

    def test_progress_most_advanced_first(self, session, make_idea):
        submitted = make_idea("submitted")
        live = make_idea("live")
        picked = make_idea("picked")
        picked_too = make_idea("picked")
        assert _ids(session, "progress") == [live.id, picked.id, picked_too.id, submitted.id]

    def test_creation_newest_first(self, session, make_idea):
        a = make_idea(created_at=datetime(2012, 1, 1))
        b = make_idea(created_at=datetime(2012, 6, 1))
        c = make_idea(created_at=datetime(2011, 1, 1))
        assert _ids(session, "creation") == [b.id, a.id, c.id]

    def test_size_smallest_first_unsized_last(self, session, make_idea):
        unsized = make_idea()
        large = make_idea(design_size=4, development_size=4)
        small = make_idea(design_size=1, development_size=1)
        half = make_idea(design_size=3)
        assert _ids(session, "size") == [small.id, large.id, unsized.id, half.id]

    def test_unknown_order(self):
        with pytest.raises(ValueError, match="Unknown order"):
            order_ideas(select(Idea), "alphabetical")


class TestInMemorySort:
    @pytest.mark.parametrize("order", list(IdeaOrder))
    def test_matches_sql(self, session, make_idea, order):
        ideas = [
            make_idea("voted", rating=3, design_size=1, development_size=2,
                      created_at=datetime(2012, 3, 1)),
            make_idea("live", rating=9, design_size=4, development_size=2,
                      created_at=datetime(2012, 1, 1)),
            make_idea("submitted", rating=7, created_at=datetime(2012, 2, 1)),
            make_idea("voted", rating=3, design_size=2, development_size=1,
                      created_at=datetime(2012, 3, 1)),
        ]
        ideas[2].ping(datetime(2099, 1, 1))
        session.flush()
        assert [i.id for i in sort_ideas(reversed(ideas), order)] == _ids(session, order)

    def test_unknown_order(self):
        with pytest.raises(ValueError):
            sort_ideas([], "alphabetical")
