"""Generic pagination utilities for SQLAlchemy async queries."""


import math
from typing import Any, Sequence

from pydantic import BaseModel
from sqlalchemy import Select, func
from sqlalchemy.ext.asyncio import AsyncSession


# ── Pydantic response models ───────────────────────────────────────

class PaginationMeta(BaseModel):
    """Metadata block embedded in paginated responses."""

    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


def total_pages(count: int, page_size: int) -> int:
    """Pages needed to show *count* rows; an empty result still has one page."""
    return max(1, math.ceil(count / page_size))


def build_meta(page: int, page_size: int, total: int) -> PaginationMeta:
    pages = total_pages(total, page_size)
    return PaginationMeta(
        page=page,
        page_size=page_size,
        total=total,
        total_pages=pages,
        has_next=page < pages,
        has_prev=page > 1,
    )


# ── SQLAlchemy helper ───────────────────────────────────────────────

async def paginate(
    session: AsyncSession,
    query: Select,
    page: int,
    page_size: int,
    *,
    options: Sequence[Any] = (),
) -> tuple[Sequence[Any], int]:
    """
    Execute *query* with LIMIT/OFFSET for the requested page.

    Returns ``(rows, total)`` where *total* counts every matching row
    regardless of the page window. Ordering must already be applied;
    loader *options* are added to the row query only.
    """
    # ── total count (strip ORDER BY for efficiency) ─────────────────
    count_q = query.with_only_columns(
        func.count(), maintain_column_froms=True
    ).order_by(None)
    total: int = (await session.execute(count_q)).scalar_one()

    # ── paginated rows ──────────────────────────────────────────────
    offset = (page - 1) * page_size
    rows = (
        await session.execute(query.options(*options).offset(offset).limit(page_size))
    ).scalars().all()

    return rows, total
