from __future__ import annotations

import math
from typing import Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field, computed_field

T = TypeVar("T")


class Result(BaseModel, Generic[T]):
    """
    Outcome of a handler: payload on success, error messages on an expected failure.

    The same shape is the HTTP envelope {succeeded, data, errors, message}.
    """
    succeeded: bool = Field(..., description="True when the operation succeeded")
    data: Optional[T] = Field(None, description="Payload on success")
    errors: List[str] = Field(default_factory=list, description="Error messages on failure")
    message: Optional[str] = Field(None, description="Optional human-readable message")

    @classmethod
    def success(cls, data: Optional[T] = None, message: Optional[str] = None) -> "Result[T]":
        return cls(succeeded=True, data=data, message=message)

    @classmethod
    def failure(cls, *errors: str, message: Optional[str] = None) -> "Result[T]":
        return cls(succeeded=False, errors=list(errors), message=message)


class PaginatedList(BaseModel, Generic[T]):
    """One page of a listing plus paging metadata."""
    items: List[T] = Field(default_factory=list)
    page_number: int = Field(1, description="1-based page number")
    page_size: int = Field(10, description="Requested page size")
    total_count: int = Field(0, description="Total items across all pages")
    total_pages: int = Field(0, description="Number of pages")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages

    @classmethod
    def create(cls, items: Sequence[T], total_count: int, page_number: int, page_size: int) -> "PaginatedList[T]":
        total_pages = math.ceil(total_count / page_size) if page_size > 0 else 0
        return cls(
            items=list(items),
            page_number=page_number,
            page_size=page_size,
            total_count=total_count,
            total_pages=total_pages,
        )
