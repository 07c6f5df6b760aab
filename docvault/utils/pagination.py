from __future__ import annotations

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def parse_int(value: str | None) -> int | None:
    """Read a raw query value as an integer; blank or malformed input gives None."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def clamp_pagination(page: int | None, per_page: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and per_page to 1..100 (default 20); never raises."""
    if page is None or page < 1:
        page = 1
    if per_page is None or per_page < 1 or per_page > MAX_PER_PAGE:
        per_page = DEFAULT_PER_PAGE
    return page, per_page


def pagination_from_query(page: str | None, per_page: str | None) -> tuple[int, int]:
    return clamp_pagination(parse_int(page), parse_int(per_page))


def offset_for(page: int, per_page: int) -> int:
    return (page - 1) * per_page


def total_pages(total: int, per_page: int) -> int:
    return (total + per_page - 1) // per_page
