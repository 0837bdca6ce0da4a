"""
Fixed-size pagination for dashboard tables
"""

import math
from typing import Any, Dict, List, Sequence


def total_pages(total: int, page_size: int) -> int:
    """ceil(total / page_size); an empty list still has zero pages."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(total / page_size)


def page_slice(items: Sequence[Any], page: int, page_size: int) -> List[Any]:
    """Items ``[(page-1)*page_size, min(page*page_size, len(items)))``; pages start at 1."""
    if page < 1:
        raise ValueError("page must be 1 or greater")
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def paginate(items: Sequence[Any], page: int, page_size: int) -> Dict[str, Any]:
    total = len(items)
    pages = total_pages(total, page_size)
    rows = page_slice(items, page, page_size)
    return {
        "items": rows,
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": pages,
        "showing_from": (page - 1) * page_size + 1 if rows else 0,
        "showing_to": (page - 1) * page_size + len(rows),
    }
