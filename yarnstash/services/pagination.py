"""Offset pagination for list endpoints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    pages: int


def page_count(total: int, limit: int | None) -> int:
    if limit is None:
        return 1 if total else 0
    return math.ceil(total / limit)


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    *,
    page: int = 1,
    limit: int | None = None,
) -> Page[Any]:
    """Run ``query`` for one page and count every match.

    Without ``limit`` the whole result set is returned as page 1.
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar_one()

    if limit is not None:
        query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    return Page(
        items=list(result.scalars().unique()),
        total=total,
        page=page,
        pages=page_count(total, limit),
    )
