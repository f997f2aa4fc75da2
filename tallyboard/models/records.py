"""
Query-shape models for record snapshots.

A Record is an opaque mapping from field name to a scalar value. Field presence
is not guaranteed across records of the same entity, so records are only ever
read through ``tallyboard.engine.transforms.get_field``.
"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from .enums import SortDirection

Record = dict[str, Any]
FilterSpec = dict[str, Any]


class SortSpec(BaseModel):
    """Single-field sort specification."""

    field: str = Field(description="Field to sort by")
    direction: SortDirection = Field(default=SortDirection.ASC, description="Sort direction")

    @property
    def descending(self) -> bool:
        return self.direction == SortDirection.DESC


class Page(BaseModel):
    """Offset/limit window. An unset limit means no truncation."""

    offset: int = Field(default=0, ge=0, description="Number of records to skip")
    limit: Optional[int] = Field(default=None, ge=0, description="Maximum records to return")


class DateRange(BaseModel):
    """Inclusive calendar date range; either bound may be open."""

    start: Optional[date] = Field(default=None, description="First day included")
    end: Optional[date] = Field(default=None, description="Last day included")

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start and self.end and self.start > self.end:
            raise ValueError("start must not be after end")
        return self
