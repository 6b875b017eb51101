from typing import Any

from app.libs.formats.datetime import iso_now


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Success envelope: {success, data, message, timestamp}."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    body["timestamp"] = iso_now()
    return body


def fail(
    message: str,
    error_code: str | None = None,
    errors: Any = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if error_code:
        body["error_code"] = error_code
    if errors is not None:
        body["errors"] = errors
    body["timestamp"] = iso_now()
    return body


def paginate(items: list[Any], total_items: int, page: int, size: int) -> dict[str, Any]:
    total_pages = (total_items + size - 1) // size if size else 0
    return {
        "page": page,
        "size": size,
        "total_items": total_items,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
        "items": items,
    }
