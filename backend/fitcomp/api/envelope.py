from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from fitcomp.core.correlation import get_correlation_id, get_request_id


def response_meta(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "request_id": get_request_id() or None,
        "correlation_id": get_correlation_id() or None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if extra:
        meta.update(extra)
    return meta


def success_envelope(
    data: Any,
    *,
    status_code: int = 200,
    meta: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": True,
            "data": jsonable_encoder(data),
            "error": None,
            "meta": response_meta(meta),
        },
    )


def error_envelope(
    *,
    code: str,
    message: str,
    status_code: int = 400,
    details: Any = None,
    meta: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "data": None,
            "error": {
                "code": code,
                "message": message,
                "details": jsonable_encoder(details),
            },
            "meta": response_meta(meta),
        },
    )


def split_error_detail(detail: Any) -> tuple[str, str, Any]:
    """Pull ``(code, message, details)`` out of an HTTPException detail.

    Domain errors carry a dict with ``code`` and ``message``; anything else is
    a plain framework error and keeps its detail as-is.
    """
    if isinstance(detail, dict) and "code" in detail and "message" in detail:
        extra = {key: value for key, value in detail.items() if key not in ("code", "message")}
        return str(detail["code"]), str(detail["message"]), extra or None
    if isinstance(detail, str):
        return "http_error", detail, None
    return "http_error", "Request failed", detail
