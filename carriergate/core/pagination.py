"""Query-string pagination for list endpoints."""


import math

from fastapi import Query
from pydantic import BaseModel

# Columns a caller may sort doc request listings by
SORTABLE_FIELDS = ("created_at", "updated_at", "expires_at", "status")


class PaginationParams:
    """FastAPI dependency for `?page=1&limit=20&sort=created_at&order=desc`.

    The Query() defaults only resolve under FastAPI; elsewhere pass every
    argument or use :meth:`first_page`.
    """

    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=20, ge=1, le=200),
        sort: str = Query(default="created_at", pattern=f"^({'|'.join(SORTABLE_FIELDS)})$"),
        order: str = Query(default="desc", pattern="^(asc|desc)$"),
    ):
        self.page = page
        self.limit = limit
        self.sort = sort
        self.order = order

    @classmethod
    def first_page(cls, limit: int = 20) -> "PaginationParams":
        return cls(page=1, limit=limit, sort="created_at", order="desc")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, total: int, pagination: PaginationParams) -> "PageMeta":
        return cls(
            total=total,
            page=pagination.page,
            limit=pagination.limit,
            pages=math.ceil(total / pagination.limit),
        )
