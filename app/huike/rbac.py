from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g

from app.huike.errors import FORBIDDEN, UNAUTHORIZED, exception
from app.huike.models import User


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    for role in user.roles:
        # super admin role bypasses per-permission checks
        if role.key == "super_admin":
            return True
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def user_permission_keys(user: User) -> list[str]:
    return sorted({perm.key for role in user.roles for perm in role.permissions})


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            raise exception(UNAUTHORIZED)
        return fn(*args, **kwargs)

    return wrapped


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated → 401; authenticated but unauthorized → 403
            if not user or not user.is_active:
                raise exception(UNAUTHORIZED)
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                raise exception(FORBIDDEN)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
