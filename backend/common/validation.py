"""
Input checks shared by the controllers.
Each helper raises ValidationError naming the offending field(s).
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from backend.common.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_dt(val: Optional[str]) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 or datetime-local string to a datetime object.

    Args:
        val (str): The date string to parse.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith('Z'):
            val = val[:-1] + '+00:00'
        return datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None


def parse_date(val: Optional[str]) -> Optional[date]:
    """Parse 'YYYY-MM-DD' (a full ISO timestamp is accepted and truncated)."""
    if not val or not isinstance(val, str):
        return None
    try:
        return date.fromisoformat(val[:10])
    except ValueError:
        return None


def require_fields(data: Dict[str, Any], names: Iterable[str]) -> None:
    """Every name must be present with a non-blank value."""
    missing = []
    for name in names:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}", fields=missing)


def check_email(value: Any, field: str = "email") -> str:
    if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
        raise ValidationError("Invalid email address", fields=[field])
    return value.strip().lower()


def check_string(value: Any, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", fields=[field])
    if len(value) > max_length:
        raise ValidationError(f"{field} must be {max_length} characters or less.", fields=[field])
    return value.strip()


def optional_string(data: Dict[str, Any], field: str, max_length: int) -> Optional[str]:
    value = data.get(field)
    if value is None or value == "":
        return None
    return check_string(value, field, max_length)


def pick(data: Dict[str, Any], allowed: List[str]) -> Dict[str, Any]:
    """Keep only the allowed keys."""
    return {k: v for k, v in data.items() if k in allowed}
