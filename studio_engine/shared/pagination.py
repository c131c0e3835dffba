"""Offset pagination for list endpoints."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

T = TypeVar("T")


class PageQuery(BaseModel):
    limit: int = 20
    offset: int = 0


def page_query(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> PageQuery:
    return PageQuery(limit=limit, offset=offset)


class Page(BaseModel, Generic[T]):
    """One slice of a filtered listing plus the unsliced total."""

    items: list[T]
    total: int
    limit: int
    offset: int

    @classmethod
    def of(cls, items: Sequence[T], total: int, query: PageQuery) -> "Page[T]":
        return cls(items=list(items), total=total, limit=query.limit, offset=query.offset)
