"""Response envelopes: `{data: ...}` for single items, `{data: [...], meta: ...}` for pages."""


from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from carriergate.core.pagination import PageMeta, PaginationParams

T = TypeVar("T")


class _Envelope(BaseModel):
    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class DataResponse(_Envelope, Generic[T]):
    data: T


class ListResponse(_Envelope, Generic[T]):
    data: list[T]
    meta: PageMeta


def paginated(items: list[Any], total: int, pagination: PaginationParams) -> dict[str, Any]:
    """Shape one page of results for a ListResponse route."""
    return {"data": items, "meta": PageMeta.build(total, pagination)}
