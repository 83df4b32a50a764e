"""
Central constants for the Huike admin application.
"""
from __future__ import annotations

from enum import IntEnum


class CommonStatus(IntEnum):
    ENABLE = 0
    DISABLE = 1

    @classmethod
    def is_disable(cls, status: int | None) -> bool:
        return status == cls.DISABLE


class UserType(IntEnum):
    MEMBER = 1
    ADMIN = 2


class LoginLogType(IntEnum):
    LOGIN_USERNAME = 100
    LOGOUT_SELF = 200
    LOGOUT_DELETE = 202


class LoginResult(IntEnum):
    SUCCESS = 0
    BAD_CREDENTIALS = 10
    USER_DISABLED = 20
    CAPTCHA_NOT_FOUND = 30
    CAPTCHA_CODE_ERROR = 31


# OAuth2 client used by the admin console itself
CLIENT_ID_DEFAULT = "default"

# Cache namespaces
MAIL_TEMPLATE_CACHE = "mail_template"
CAPTCHA_CACHE = "captcha"
