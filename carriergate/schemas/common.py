"""Shared Pydantic building blocks: camelCase base model and UTC-normalized datetimes."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel
from pydantic.alias_generators import to_camel

from carriergate.domain.mixins import as_utc

# SQLite returns naive datetimes; every value leaving the API is tz-aware UTC
UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    """Base for request and response DTOs. Accepts snake_case or camelCase, emits camelCase."""

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
        "from_attributes": True,
    }


class HealthResponse(BaseModel):
    status: str = "ok"
    app: str
    env: str
    version: str
