from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorCode:
    code: int
    msg: str


# Global
BAD_REQUEST = ErrorCode(400, "请求参数不正确: {}")
UNAUTHORIZED = ErrorCode(401, "账号未登录")
FORBIDDEN = ErrorCode(403, "没有该操作权限")
NOT_FOUND = ErrorCode(404, "请求未找到")
INTERNAL_SERVER_ERROR = ErrorCode(500, "系统异常")

# Auth
AUTH_LOGIN_BAD_CREDENTIALS = ErrorCode(1_002_000_000, "登录失败，账号密码不正确")
AUTH_LOGIN_USER_DISABLED = ErrorCode(1_002_000_001, "登录失败，账号被禁用")
AUTH_LOGIN_CAPTCHA_CODE_ERROR = ErrorCode(1_002_000_004, "验证码不正确，原因：{}")
AUTH_REGISTER_CAPTCHA_CODE_ERROR = ErrorCode(1_002_000_008, "验证码不正确，原因：{}")
AUTH_CAPTCHA_CHECK_ERROR = ErrorCode(1_002_000_009, "验证码校验失败，原因：{}")

# User
USER_USERNAME_EXISTS = ErrorCode(1_002_003_000, "用户账号已经存在")
USER_NOT_EXISTS = ErrorCode(1_002_003_003, "用户不存在")
USER_MOBILE_NOT_EXISTS = ErrorCode(1_002_003_009, "该手机号尚未注册")

# OAuth2
OAUTH2_GRANT_CLIENT_ID_MISMATCH = ErrorCode(1_002_022_000, "client_id 不匹配")
OAUTH2_GRANT_REFRESH_TOKEN_INVALID = ErrorCode(1_002_022_001, "无效的刷新令牌")
OAUTH2_GRANT_REFRESH_TOKEN_EXPIRE = ErrorCode(1_002_022_002, "刷新令牌已过期")

# Mail
MAIL_TEMPLATE_NOT_EXISTS = ErrorCode(1_002_026_000, "邮件模版不存在")
MAIL_TEMPLATE_CODE_EXISTS = ErrorCode(1_002_026_001, "邮件模版 code({}) 已存在")

# Infra: files
FILE_NOT_EXISTS = ErrorCode(1_001_003_000, "文件不存在")
FILE_PRESIGN_NOT_SUPPORTED = ErrorCode(1_001_003_001, "当前存储不支持预签名上传")


class ServiceException(Exception):
    """
    Business error raised at a validation point and surfaced to the API caller.

    Callers branch on ``error_code``; ``code`` and ``msg`` are what the client sees.
    """

    def __init__(self, error_code: ErrorCode, *args: object) -> None:
        self.error_code = error_code
        self.code = error_code.code
        self.msg = error_code.msg.format(*args) if args else _strip_placeholders(error_code.msg)
        super().__init__(self.msg)


def exception(error_code: ErrorCode, *args: object) -> ServiceException:
    return ServiceException(error_code, *args)


_PLACEHOLDER = re.compile(r"\s*[(（]?\{\}[)）]?")


def _strip_placeholders(msg: str) -> str:
    """Message text for a code raised without arguments: drop ``{}`` slots and their brackets."""
    return _PLACEHOLDER.sub("", msg).rstrip("：:，, ")
