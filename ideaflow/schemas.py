"""Pydantic schemas for idea payloads and summaries."""
from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, field_validator

from ideaflow.enums import IdeaKind


class _SizesMixin(BaseModel):
    design_size: int | None = Field(None, ge=1, le=4)
    development_size: int | None = Field(None, ge=1, le=4)


class IdeaCreate(_SizesMixin):
    title: str
    problem: str
    solution: str
    metrics: str
    kind: IdeaKind = IdeaKind.FEATURE
    category: str | None = None
    rating: int = 0
    deadline: date | None = None
    product_manager_id: int | None = None

    @field_validator("title", "problem", "solution", "metrics")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class IdeaUpdate(_SizesMixin):
    title: str | None = None
    problem: str | None = None
    solution: str | None = None
    metrics: str | None = None
    kind: IdeaKind | None = None
    category: str | None = None
    rating: int | None = None
    deadline: date | None = None
    product_manager_id: int | None = None


class IdeaOut(BaseModel):
    id: int
    title: str
    kind: str
    category: str | None = None
    state: str
    state_label: str
    rating: int
    design_size: int | None = None
    development_size: int | None = None
    sized: bool
    size: int | None = None
    size_label: str | None = None
    rating_density: int
    author_id: int
    product_manager_id: int | None = None
    created_at: str | None = None
    active_at: str | None = None
