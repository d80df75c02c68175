from typing import List, Any
from math import ceil
import logging
from sqlalchemy.orm import Query
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class PaginationParams(BaseModel):
    page: int = 1
    page_size: int = 25

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def ensure_valid(self):
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > 1000:
            raise ValueError("Page size must be between 1 and 1000")


class PaginatedResult(BaseModel):
    items: List[Any]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


def paginate(
    query: Query,
    page: int = 1,
    page_size: int = 25
) -> PaginatedResult:
    params = PaginationParams(page=page, page_size=page_size)
    params.ensure_valid()
    total = query.order_by(None).count()
    items = query.offset(params.offset).limit(page_size).all()
    logger.debug(f"Paginated query: total={total}, page={page}, page_size={page_size}")

    total_pages = ceil(total / page_size) if total > 0 else 0

    return PaginatedResult(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1
    )
