"""공통 페이지네이션 스키마."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")

MAX_PAGE_SIZE = 100


class PaginatedResponse(BaseModel, Generic[T]):
    """페이지네이션 응답 공통 스키마."""

    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int = 0


def normalize_page(page: int, page_size: int, default_size: int = 10) -> tuple[int, int]:
    """잘못된 page/page_size 값을 기본값으로 보정한다."""

    if page <= 0:
        page = 1
    if page_size <= 0 or page_size > MAX_PAGE_SIZE:
        page_size = default_size
    return page, page_size


def count_pages(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return (total + page_size - 1) // page_size
