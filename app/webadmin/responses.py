from __future__ import annotations

import math
from typing import Any

from app.webadmin.errors import get_messages


def success_response(data: Any = None, message_key: str | None = "SUCCESS", message: str | None = None, **extra: Any) -> dict:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    if message_key:
        body["messages"] = get_messages(message_key)
    body.update(extra)
    return body


def pagination_info(page: int, limit: int, total: int) -> dict:
    pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "totalPages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def paginated_response(items: list, page: int, limit: int, total: int, message_key: str | None = "SUCCESS") -> dict:
    body = success_response(items, message_key=message_key)
    body["pagination"] = pagination_info(page, limit, total)
    return body
