"""
api/pagination.py -- Shared limit/offset query parameters.

Every listing endpoint takes the same two parameters. Out-of-range values
fail FastAPI's query validation and come back as 400 validation_error.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Query

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class Page:
    limit: int
    offset: int


def page_params(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> Page:
    return Page(limit=limit, offset=offset)
