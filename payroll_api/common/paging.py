# payroll_api/common/paging.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List

from flask import request

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def page_limit(default_limit: int = DEFAULT_LIMIT, max_limit: int = MAX_LIMIT):
    """
    ?page=2&limit=50  (size accepted as an alias for limit)
    Bad values fall back to defaults; limit is clamped to [1, max_limit].
    """
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except Exception:
        page = DEFAULT_PAGE
    raw = request.args.get("limit", request.args.get("size", default_limit))
    try:
        limit = max(1, min(int(raw), max_limit))
    except Exception:
        limit = default_limit
    return page, limit


@dataclass
class Page:
    rows: List[Any]
    total: int
    page: int
    limit: int
    extra: dict = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return max(math.ceil(self.total / self.limit), 1)

    def meta(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
            **self.extra,
        }


def paginate(query, page: int, limit: int) -> Page:
    """skip/limit over an already ordered query"""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return Page(rows=rows, total=total, page=page, limit=limit)
