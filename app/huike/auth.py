from __future__ import annotations

import uuid

from flask import current_app, g, request

from app.huike.db import db_session
from app.huike.models import User
from app.huike.modules.oauth2.service import OAuth2TokenService

_PUBLIC_PREFIXES = ("/static/", "/health", "/healthz")


def obtain_authorization(req=None) -> str | None:
    """Access token from ``Authorization: Bearer <token>`` (or ``?token=`` for downloads)."""
    req = req or request
    header = (req.headers.get("Authorization") or "").strip()
    if header[:7].lower() == "bearer ":
        return header[7:].strip() or None
    return (req.args.get("token") or "").strip() or None


def load_current_user() -> None:
    """
    Loads g.current_user from the bearer access token.
    Also assigns a simple per-request request_id (for login log/audit correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    g.current_user = None
    g.access_token = None
    if request.path.startswith(_PUBLIC_PREFIXES):
        return

    token = obtain_authorization()
    if not token:
        return

    try:
        s = db_session()
        access_token = OAuth2TokenService(s).check_access_token(token)
        if access_token is None:
            return
        user = s.get(User, access_token.user_id)
        if not user or not user.is_active:
            return
        g.current_user = user
        g.access_token = access_token
    except Exception as e:
        current_app.logger.error("load_current_user DB error (treating as anonymous): %s", e)
        g.current_user = None
