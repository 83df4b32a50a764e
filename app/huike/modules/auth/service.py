from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from app.huike.captcha import CaptchaResult, CaptchaService
from app.huike.constants import CLIENT_ID_DEFAULT, CommonStatus, LoginLogType, LoginResult, UserType
from app.huike.errors import (
    AUTH_LOGIN_BAD_CREDENTIALS,
    AUTH_LOGIN_CAPTCHA_CODE_ERROR,
    AUTH_LOGIN_USER_DISABLED,
    AUTH_REGISTER_CAPTCHA_CODE_ERROR,
    BAD_REQUEST,
    USER_MOBILE_NOT_EXISTS,
    exception,
)
from app.huike.modules.logger.service import LoginAttempt
from app.huike.utils import get_client_ip, get_trace_id, get_user_agent

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.huike.models import User
    from app.huike.modules.logger.service import LoginLogService
    from app.huike.modules.oauth2.models import OAuth2AccessToken
    from app.huike.modules.oauth2.service import OAuth2TokenService
    from app.huike.modules.user.service import UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSettings:
    captcha_enable: bool = True


@dataclass
class AuthLoginReq:
    username: str
    password: str
    captcha_verification: str | None = None


@dataclass
class AuthRegisterReq:
    username: str
    password: str
    nickname: str | None = None
    captcha_verification: str | None = None


@dataclass
class AuthResetPasswordReq:
    mobile: str
    password: str


@dataclass(frozen=True)
class AuthLoginResp:
    user_id: int
    access_token: str
    refresh_token: str
    expires_time: datetime

    @classmethod
    def from_token(cls, token: "OAuth2AccessToken") -> "AuthLoginResp":
        return cls(
            user_id=token.user_id,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_time=token.expires_time,
        )

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresTime": int(self.expires_time.timestamp() * 1000),
        }


class AdminAuthService:
    """
    Admin authentication flows.

    Every login attempt (successful or not) produces exactly one login log
    entry, except token refresh (never logged) and register captcha failures.
    Login log writes are best-effort: a failing write is logged and swallowed.
    Operations commit their own unit of work on ``s``.
    """

    def __init__(
        self,
        s: "Session",
        *,
        user_service: "UserService",
        login_log_service: "LoginLogService",
        token_service: "OAuth2TokenService",
        captcha_service: CaptchaService,
        settings: AuthSettings = AuthSettings(),
    ) -> None:
        self.s = s
        self.user_service = user_service
        self.login_log_service = login_log_service
        self.token_service = token_service
        self.captcha_service = captcha_service
        self.settings = settings

    def authenticate(self, username: str, password: str) -> "User":
        log_type = LoginLogType.LOGIN_USERNAME
        user = self.user_service.get_user_by_username(username)
        if user is None:
            self._create_failure_log(None, username, log_type, LoginResult.BAD_CREDENTIALS)
            raise exception(AUTH_LOGIN_BAD_CREDENTIALS)
        if not self.user_service.is_password_match(password, user.password_hash):
            self._create_failure_log(user.id, username, log_type, LoginResult.BAD_CREDENTIALS)
            raise exception(AUTH_LOGIN_BAD_CREDENTIALS)
        # disabled status is only checked after a password match
        if CommonStatus.is_disable(user.status):
            self._create_failure_log(user.id, username, log_type, LoginResult.USER_DISABLED)
            raise exception(AUTH_LOGIN_USER_DISABLED)
        return user

    def login(self, req: AuthLoginReq) -> AuthLoginResp:
        self.validate_captcha(req)
        user = self.authenticate(req.username, req.password)
        return self._create_token_after_login_success(user.id, req.username, LoginLogType.LOGIN_USERNAME)

    def register(self, req: AuthRegisterReq) -> AuthLoginResp:
        self.validate_register_captcha(req)
        user_id = self.user_service.register_user(req)
        return self._create_token_after_login_success(user_id, req.username, LoginLogType.LOGIN_USERNAME)

    def refresh_token(self, refresh_token: str) -> AuthLoginResp:
        token = self.token_service.refresh_access_token(refresh_token, CLIENT_ID_DEFAULT)
        resp = AuthLoginResp.from_token(token)
        self.s.commit()
        return resp

    def logout(self, token: str, log_type: int) -> None:
        removed = self.token_service.remove_access_token(token)
        if removed is None:
            return
        self._create_login_log(
            removed.user_id,
            self._get_username(removed.user_id),
            log_type,
            LoginResult.SUCCESS,
            user_type=removed.user_type,
        )
        self.s.commit()

    def reset_password(self, req: AuthResetPasswordReq) -> None:
        try:
            user = self.user_service.get_user_by_mobile(req.mobile)
            if user is None:
                raise exception(USER_MOBILE_NOT_EXISTS)
            self.user_service.update_user_password(user.id, req.password)
            self.s.commit()
        except Exception:
            self.s.rollback()
            raise

    def validate_captcha(self, req: AuthLoginReq) -> None:
        result = self._do_validate_captcha(req.captcha_verification)
        if not result.success:
            self._create_failure_log(
                None, req.username, LoginLogType.LOGIN_USERNAME, LoginResult.CAPTCHA_CODE_ERROR
            )
            raise exception(AUTH_LOGIN_CAPTCHA_CODE_ERROR, result.rep_msg)

    def validate_register_captcha(self, req: AuthRegisterReq) -> None:
        # No login log here: registration captcha failures are not login attempts.
        result = self._do_validate_captcha(req.captcha_verification)
        if not result.success:
            raise exception(AUTH_REGISTER_CAPTCHA_CODE_ERROR, result.rep_msg)

    def _do_validate_captcha(self, captcha_verification: str | None) -> CaptchaResult:
        if not self.settings.captcha_enable:
            return CaptchaResult.ok()
        if not (captcha_verification or "").strip():
            raise exception(BAD_REQUEST, "验证码不能为空")
        return self.captcha_service.verification(captcha_verification)

    def _create_token_after_login_success(self, user_id: int, username: str, log_type: int) -> AuthLoginResp:
        self._create_login_log(user_id, username, log_type, LoginResult.SUCCESS)
        self.user_service.update_user_login(user_id, get_client_ip())
        token = self.token_service.create_access_token(user_id, UserType.ADMIN, CLIENT_ID_DEFAULT)
        resp = AuthLoginResp.from_token(token)
        self.s.commit()
        return resp

    def _create_login_log(
        self,
        user_id: int | None,
        username: str | None,
        log_type: int,
        result: int,
        *,
        user_type: int = UserType.ADMIN,
    ) -> None:
        attempt = LoginAttempt(
            log_type=int(log_type),
            user_id=user_id,
            user_type=int(user_type),
            username=username,
            result=int(result),
            trace_id=get_trace_id(),
            user_ip=get_client_ip(),
            user_agent=get_user_agent(),
        )
        try:
            self.login_log_service.create_login_log(attempt)
        except Exception:
            logger.exception("Failed to write login log (username=%s result=%s)", username, attempt.result)

    def _create_failure_log(self, user_id: int | None, username: str, log_type: int, result: int) -> None:
        """Write and commit a failure log; the caller raises right after."""
        self._create_login_log(user_id, username, log_type, result)
        try:
            self.s.commit()
        except Exception:
            self.s.rollback()
            logger.exception("Failed to commit login log (username=%s result=%s)", username, int(result))

    def _get_username(self, user_id: int | None) -> str | None:
        if user_id is None:
            return None
        try:
            user = self.user_service.get_user(user_id)
        except Exception:
            logger.warning("Could not resolve username for user_id=%s", user_id, exc_info=True)
            return None
        return user.username if user is not None else None
