"""Pagination utilities for list endpoints."""

from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session


# Pagination limits
DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass
class PaginationParams:
    """Pagination parameters from query string."""
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def pages(self, total: int) -> int:
        return (total + self.per_page - 1) // self.per_page if self.per_page > 0 else 0


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    per_page: int | None = Query(None, ge=1, le=MAX_PER_PAGE, description=f"Items per page (max {MAX_PER_PAGE})"),
    limit: int | None = Query(None, ge=1, le=MAX_PER_PAGE, description="Alias of per_page"),
) -> PaginationParams:
    """
    Pagination dependency.

    Usage:
        @router.get("/items")
        def list_items(pagination: PaginationParams = Depends(get_pagination)):
            ...
    """
    return PaginationParams(page=page, per_page=per_page or limit or DEFAULT_PER_PAGE)


def paginate_select(
    db: Session, stmt: Select[Any], pagination: PaginationParams
) -> tuple[list[Any], int]:
    """
    Apply pagination to a 2.0-style select of ORM entities.

    Returns:
        (items, total_count)
    """
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    items = list(db.scalars(stmt.offset(pagination.offset).limit(pagination.per_page)))
    return items, total


def page_payload(items: list[Any], total: int, pagination: PaginationParams) -> dict[str, Any]:
    """Standard paginated response body."""
    return {
        "items": items,
        "total": total,
        "page": pagination.page,
        "per_page": pagination.per_page,
        "pages": pagination.pages(total),
    }
