"""Small helpers shared by the REST route modules."""

from __future__ import annotations

import math
import uuid

from fastapi import HTTPException

WORDS_PER_MINUTE = 200


def reading_time_minutes(content: str) -> int:
    return max(1, math.ceil(len(content.split()) / WORDS_PER_MINUTE))


def parse_uuid(value: str, field: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {field} format: '{value}' is not a valid UUID.")


def pagination(page: int, limit: int, total: int) -> dict:
    """Pagination block for 1-based page numbers."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }
