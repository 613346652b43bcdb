"""
Skip/limit pagination shared by every listing endpoint.
"""

import os
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_LIMIT = 10
# OFFSET and LIMIT are bigint in PostgreSQL
BIGINT_MAX = 2 ** 63 - 1


def _max_limit() -> Optional[int]:
    raw = os.getenv("MAX_PAGE_LIMIT")
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _to_int(raw: Any) -> Optional[int]:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value <= BIGINT_MAX else None


def parse_pagination(args: Mapping[str, Any], default_limit: int = DEFAULT_LIMIT) -> Tuple[int, int]:
    """
    Read `skip` and `limit` from query arguments.

    Bad values never raise: a missing, non-numeric, negative or out-of-range
    skip becomes 0, and a missing, non-numeric, non-positive or out-of-range
    limit becomes the endpoint default. When MAX_PAGE_LIMIT is set, limit is
    capped to it.

    Args:
        args (Mapping): Query arguments (e.g. flask.request.args).
        default_limit (int): Page size used when none is given.

    Returns:
        tuple: (skip, limit)
    """
    skip = _to_int(args.get("skip"))
    limit = _to_int(args.get("limit"))

    if skip is None or skip < 0:
        skip = 0
    if limit is None or limit <= 0:
        limit = default_limit

    cap = _max_limit()
    if cap is not None:
        limit = min(limit, cap)
    return skip, limit


def page_info(skip: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "skip": skip,
        "limit": limit,
        "total": total,
        "hasMore": (skip + limit) < total,
    }


def paginate(items_key: str, items: List[Any], skip: int, limit: int, total: int) -> Dict[str, Any]:
    """Shape a page as {items_key: [...], "pagination": {...}}."""
    return {items_key: items, "pagination": page_info(skip, limit, total)}
