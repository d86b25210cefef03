"""Page-based listing for the back-office list endpoints.

Every list endpoint (employees, schools, postings, leave, invoices,
payments) takes ``page`` / ``page_size`` / ``sort`` and answers with the
same ``{"data": [...], "meta": {...}}`` envelope.
"""


import math
from typing import Any, Generic, Optional, Sequence, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from backend.common.filters import apply_sorting

T = TypeVar("T")


class PaginationParams:
    """Query parameters for list endpoints; inject with ``Depends()``."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
        sort: Optional[str] = Query(
            default=None,
            description='Column to sort by, "-" prefix for descending, e.g. "-start_date"',
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size
        self.sort = sort

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, params: PaginationParams, total: int) -> "PaginationMeta":
        total_pages = math.ceil(total / params.page_size) if total else 0
        return cls(
            page=params.page,
            page_size=params.page_size,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    data: Sequence[T]
    meta: PaginationMeta

    def envelope(self, schema: type[BaseModel]) -> dict[str, Any]:
        """Serialise the page's ORM rows through *schema* for a JSON response."""
        return {
            "data": [schema.model_validate(row).model_dump(mode="json") for row in self.data],
            "meta": self.meta.model_dump(),
        }


async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
    *,
    model: Any,
) -> PaginatedResponse:
    """Run one page of *query*.

    A ``sort`` parameter replaces the query's own ordering and must name a
    column of *model*. Rows that tie on the sort key are ordered by primary
    key so that consecutive pages neither repeat nor skip a row.
    """
    if params.sort:
        query = apply_sorting(query.order_by(None), model, params.sort)
    query = query.order_by(model.id)

    total: int = (
        await session.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
    ).scalar_one()

    rows = (
        await session.execute(query.offset(params.offset).limit(params.page_size))
    ).scalars().all()

    return PaginatedResponse(data=rows, meta=PaginationMeta.build(params, total))
