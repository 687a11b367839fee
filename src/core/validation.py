"""
Request parameter validation.
"""

from core.config import DEFAULT_PAGE_SIZE, PAGE_SIZE_CHOICES
from core.errors import ValidationError

VIEW_POLICIES = {"year", "month"}
SORT_DIRECTIONS = {"asc", "desc"}


def require_query_value(name: str, value: str | None) -> str:
    """Trimmed query value, or ValidationError if it is missing or blank."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"Missing query param: {name}")
    return cleaned


def parse_page_size(page_size: int) -> int:
    """Check page size is one of the selectable choices."""
    if page_size not in PAGE_SIZE_CHOICES and page_size != DEFAULT_PAGE_SIZE:
        raise ValidationError(
            f"Invalid page_size {page_size}",
            details=[f"Expected one of: {', '.join(str(c) for c in PAGE_SIZE_CHOICES)}"],
        )
    return page_size


def parse_sort_direction(direction: str) -> str:
    cleaned = (direction or "").strip().lower()
    if cleaned not in SORT_DIRECTIONS:
        raise ValidationError(f"Invalid sort direction '{direction}'", details=["Expected 'asc' or 'desc'"])
    return cleaned


def parse_view_policy(policy: str) -> str:
    cleaned = (policy or "").strip().lower()
    if cleaned not in VIEW_POLICIES:
        raise ValidationError(f"Invalid view policy '{policy}'", details=["Expected 'year' or 'month'"])
    return cleaned
