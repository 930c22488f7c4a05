"""Response envelopes shared by every endpoint."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import HTTPException

# Error titles clients already match on
_ERROR_TITLES: dict[int, str] = {
    400: "Bad request",
    404: "Not found",
    429: "Too many requests",
    500: "Internal server error",
    503: "Service unavailable",
}


def list_response(data: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
    """{data, count} plus any extra top-level keys (total, the parent ref)."""
    return {"data": data, "count": len(data), **extra}


def item_response(data: dict[str, Any]) -> dict[str, Any]:
    return {"data": data}


def error_title(status_code: int) -> str:
    if status_code in _ERROR_TITLES:
        return _ERROR_TITLES[status_code]
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_response(status_code: int, message: str | None = None) -> dict[str, Any]:
    """{error, message}; message is left out when None."""
    body: dict[str, Any] = {"error": error_title(status_code)}
    if message is not None:
        body["message"] = message
    return body


def not_found(label: str, code: str) -> HTTPException:
    """404 for an unknown code, e.g. "Province with code 042100000 not found"."""
    return HTTPException(status_code=404, detail=f"{label} with code {code} not found")
