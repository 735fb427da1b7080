from typing import Any, Optional

from fastapi.encoders import jsonable_encoder


def envelope(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    """Build the ``{success, message?, data?, ...}`` body every route returns"""
    body = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True)
    for key, value in extra.items():
        body[key] = jsonable_encoder(value, by_alias=True)
    return body


def pagination(page: int, limit: int, total: int, total_key: str) -> dict:
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        total_key: total,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }
