from __future__ import annotations

from typing import Any

from flask import g, has_request_context, request


def get_trace_id() -> str | None:
    """Per-request correlation id assigned in ``load_current_user``."""
    if not has_request_context():
        return None
    return getattr(g, "request_id", None)


def get_client_ip() -> str | None:
    if not has_request_context():
        return None
    forwarded = (request.headers.get("X-Forwarded-For") or "").strip()
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr


def get_user_agent() -> str | None:
    if not has_request_context():
        return None
    return request.headers.get("User-Agent")


def success(data: Any = None) -> dict:
    return {"code": 0, "data": data, "msg": ""}


def error(code: int, msg: str) -> dict:
    return {"code": code, "data": None, "msg": msg}


def parse_id_list(raw: str | None) -> list[int]:
    """Parse ``"1,2,3"`` (query-string style) into ints, ignoring blanks."""
    if not raw:
        return []
    return [int(part) for part in raw.split(",") if part.strip()]
