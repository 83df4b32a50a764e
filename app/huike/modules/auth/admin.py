from __future__ import annotations

import re

from flask import Blueprint, current_app, g, request

from app.huike.auth import obtain_authorization
from app.huike.constants import LoginLogType
from app.huike.db import db_session
from app.huike.errors import AUTH_CAPTCHA_CHECK_ERROR, BAD_REQUEST, exception
from app.huike.modules.auth.service import (
    AdminAuthService,
    AuthLoginReq,
    AuthRegisterReq,
    AuthResetPasswordReq,
    AuthSettings,
)
from app.huike.modules.logger.service import LoginLogService
from app.huike.modules.oauth2.service import OAuth2TokenService
from app.huike.modules.user.service import UserService
from app.huike.rbac import require_login, user_permission_keys
from app.huike.utils import success

bp = Blueprint("auth", __name__)
captcha_bp = Blueprint("captcha", __name__)

_USERNAME_RE = re.compile(r"^[A-Za-z0-9]{4,30}$")
_MOBILE_RE = re.compile(r"^1\d{10}$")


def auth_service() -> AdminAuthService:
    s = db_session()
    cfg = current_app.config
    return AdminAuthService(
        s,
        user_service=UserService(s),
        login_log_service=LoginLogService(s),
        token_service=OAuth2TokenService(
            s,
            access_token_ttl=cfg["ACCESS_TOKEN_TTL"],
            refresh_token_ttl=cfg["REFRESH_TOKEN_TTL"],
        ),
        captcha_service=current_app.extensions["captcha_service"],
        settings=AuthSettings(captcha_enable=bool(cfg.get("CAPTCHA_ENABLE", True))),
    )


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _raise_if_errors(errors: list[str]) -> None:
    if errors:
        raise exception(BAD_REQUEST, "; ".join(errors))


def validate_login_payload(payload: dict) -> list[str]:
    errors = []
    if not str(payload.get("username") or "").strip():
        errors.append("登录账号不能为空")
    if not str(payload.get("password") or ""):
        errors.append("密码不能为空")
    return errors


def validate_register_payload(payload: dict) -> list[str]:
    errors = []
    username = str(payload.get("username") or "").strip()
    if not _USERNAME_RE.match(username):
        errors.append("用户账号由 4-30 位数字、字母组成")
    password = str(payload.get("password") or "")
    if not 4 <= len(password) <= 16:
        errors.append("密码长度为 4-16 位")
    return errors


def validate_reset_password_payload(payload: dict) -> list[str]:
    errors = []
    if not _MOBILE_RE.match(str(payload.get("mobile") or "").strip()):
        errors.append("手机号格式不正确")
    password = str(payload.get("password") or "")
    if not 4 <= len(password) <= 16:
        errors.append("密码长度为 4-16 位")
    return errors


@bp.post("/login")
def login():
    payload = _payload()
    _raise_if_errors(validate_login_payload(payload))
    req = AuthLoginReq(
        username=str(payload["username"]).strip(),
        password=str(payload["password"]),
        captcha_verification=payload.get("captchaVerification"),
    )
    return success(auth_service().login(req).to_dict())


@bp.post("/logout")
def logout():
    token = obtain_authorization()
    if token:
        auth_service().logout(token, LoginLogType.LOGOUT_SELF)
    return success(True)


@bp.post("/refresh-token")
def refresh_token():
    token = (request.args.get("refreshToken") or "").strip()
    if not token:
        raise exception(BAD_REQUEST, "刷新令牌不能为空")
    return success(auth_service().refresh_token(token).to_dict())


@bp.post("/register")
def register():
    payload = _payload()
    _raise_if_errors(validate_register_payload(payload))
    req = AuthRegisterReq(
        username=str(payload["username"]).strip(),
        password=str(payload["password"]),
        nickname=(payload.get("nickname") or "").strip() or None,
        captcha_verification=payload.get("captchaVerification"),
    )
    return success(auth_service().register(req).to_dict())


@bp.post("/reset-password")
def reset_password():
    payload = _payload()
    _raise_if_errors(validate_reset_password_payload(payload))
    auth_service().reset_password(
        AuthResetPasswordReq(mobile=str(payload["mobile"]).strip(), password=str(payload["password"]))
    )
    return success(True)


@captcha_bp.post("/get")
def get_captcha():
    return success({"token": current_app.extensions["captcha_service"].get()})


@captcha_bp.post("/check")
def check_captcha():
    challenge = str(_payload().get("token") or "").strip()
    if not challenge:
        raise exception(BAD_REQUEST, "token 不能为空")
    result = current_app.extensions["captcha_service"].check(challenge)
    if not result.success:
        raise exception(AUTH_CAPTCHA_CHECK_ERROR, result.rep_msg)
    return success({"captchaVerification": result.captcha_verification})


@bp.get("/get-permission-info")
@require_login
def get_permission_info():
    user = g.current_user
    return success(
        {
            "user": {"id": user.id, "username": user.username, "nickname": user.nickname},
            "roles": sorted(role.key for role in user.roles),
            "permissions": user_permission_keys(user),
        }
    )
