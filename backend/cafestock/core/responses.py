"""Standardized API response helpers.

Paginated endpoints return:
    {"items": [...], "total": <int>, "skip": <int>, "limit": <int>, "has_more": <bool>}

Plain list endpoints return the list directly, as the dashboard expects.
"""


def paginated_response(
    items: list,
    total: int,
    skip: int = 0,
    limit: int = 50,
) -> dict:
    """Wrap a paginated list in the standard envelope.

    Args:
        items: The page of serialized items.
        total: Total count across all pages.
        skip: Number of items skipped.
        limit: Page size requested.
    """
    return {
        "items": items,
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }


def error_body(message: str, details=None) -> dict:
    """Body shared by every error response."""
    body = {"error": message}
    if details is not None:
        body["details"] = details
    return body
