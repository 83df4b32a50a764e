"""Tests for the admin auth flows against in-memory collaborators."""
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest import mock

import pytest

from app.huike import errors
from app.huike.captcha import CaptchaResult, CaptchaService
from app.huike.constants import CLIENT_ID_DEFAULT, CommonStatus, LoginLogType, LoginResult, UserType
from app.huike.errors import ServiceException
from app.huike.modules.auth.service import (
    AdminAuthService,
    AuthLoginReq,
    AuthRegisterReq,
    AuthResetPasswordReq,
    AuthSettings,
)


class FakeUserService:
    def __init__(self, *users):
        self.users = {u.id: u for u in users}
        self.lookups = []
        self.login_updates = []
        self.password_updates = []
        self.registered = []
        self.fail_password_update = False

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_user_by_username(self, username):
        self.lookups.append(username)
        return next((u for u in self.users.values() if u.username == username), None)

    def get_user_by_mobile(self, mobile):
        return next((u for u in self.users.values() if u.mobile == mobile), None)

    def is_password_match(self, raw_password, password_hash):
        return raw_password == password_hash

    def update_user_login(self, user_id, login_ip):
        self.login_updates.append((user_id, login_ip))

    def update_user_password(self, user_id, password):
        if self.fail_password_update:
            raise RuntimeError("db down")
        self.password_updates.append((user_id, password))

    def register_user(self, req):
        user_id = max(self.users, default=0) + 1
        self.users[user_id] = _user(user_id, req.username, req.password)
        self.registered.append(req.username)
        return user_id


class FakeLoginLogService:
    def __init__(self, fail=False):
        self.attempts = []
        self.fail = fail

    def create_login_log(self, attempt):
        if self.fail:
            raise RuntimeError("log table locked")
        self.attempts.append(attempt)


class FakeTokenService:
    def __init__(self):
        self.created = []
        self.tokens = {}

    def create_access_token(self, user_id, user_type, client_id, scopes=None):
        token = SimpleNamespace(
            access_token=f"at-{len(self.created) + 1}",
            refresh_token=f"rt-{len(self.created) + 1}",
            user_id=user_id,
            user_type=user_type,
            client_id=client_id,
            expires_time=datetime(2030, 1, 1),
        )
        self.created.append(token)
        self.tokens[token.access_token] = token
        return token

    def refresh_access_token(self, refresh_token, client_id):
        return SimpleNamespace(
            access_token="at-new",
            refresh_token=refresh_token,
            user_id=1,
            user_type=UserType.ADMIN,
            client_id=client_id,
            expires_time=datetime.utcnow() + timedelta(minutes=30),
        )

    def remove_access_token(self, token):
        return self.tokens.pop(token, None)


class FakeCaptchaService(CaptchaService):
    def __init__(self, result=None):
        self.result = result or CaptchaResult.ok()
        self.calls = []

    def verification(self, captcha_verification):
        self.calls.append(captcha_verification)
        return self.result


def _user(user_id, username, password, *, status=CommonStatus.ENABLE, mobile=None):
    return SimpleNamespace(id=user_id, username=username, password_hash=password, status=status, mobile=mobile)


@pytest.fixture()
def deps():
    return SimpleNamespace(
        s=mock.Mock(),
        users=FakeUserService(
            _user(1, "admin", "admin123", mobile="15601691300"),
            _user(2, "frozen", "frozen123", status=CommonStatus.DISABLE),
        ),
        logs=FakeLoginLogService(),
        tokens=FakeTokenService(),
        captcha=FakeCaptchaService(),
    )


def _service(deps, *, captcha_enable=False):
    return AdminAuthService(
        deps.s,
        user_service=deps.users,
        login_log_service=deps.logs,
        token_service=deps.tokens,
        captcha_service=deps.captcha,
        settings=AuthSettings(captcha_enable=captcha_enable),
    )


def test_login_success_issues_token_and_logs(deps):
    resp = _service(deps).login(AuthLoginReq(username="admin", password="admin123"))

    assert resp.user_id == 1
    assert resp.access_token == "at-1"
    assert len(deps.tokens.created) == 1
    token = deps.tokens.created[0]
    assert (token.user_type, token.client_id) == (UserType.ADMIN, CLIENT_ID_DEFAULT)
    assert [(a.result, a.user_id, a.log_type) for a in deps.logs.attempts] == [
        (LoginResult.SUCCESS, 1, LoginLogType.LOGIN_USERNAME)
    ]
    assert deps.users.login_updates == [(1, None)]
    deps.s.commit.assert_called()


def test_login_wrong_password(deps):
    with pytest.raises(ServiceException) as ei:
        _service(deps).login(AuthLoginReq(username="admin", password="nope"))

    assert ei.value.error_code is errors.AUTH_LOGIN_BAD_CREDENTIALS
    assert deps.tokens.created == []
    assert len(deps.logs.attempts) == 1
    attempt = deps.logs.attempts[0]
    assert attempt.result == LoginResult.BAD_CREDENTIALS
    assert attempt.user_id == 1
    assert attempt.username == "admin"
    assert attempt.user_type == UserType.ADMIN


def test_login_unknown_user_logs_without_user_id(deps):
    with pytest.raises(ServiceException) as ei:
        _service(deps).login(AuthLoginReq(username="ghost", password="x"))

    assert ei.value.error_code is errors.AUTH_LOGIN_BAD_CREDENTIALS
    assert [(a.result, a.user_id, a.username) for a in deps.logs.attempts] == [
        (LoginResult.BAD_CREDENTIALS, None, "ghost")
    ]


def test_login_disabled_user(deps):
    with pytest.raises(ServiceException) as ei:
        _service(deps).login(AuthLoginReq(username="frozen", password="frozen123"))

    assert ei.value.error_code is errors.AUTH_LOGIN_USER_DISABLED
    assert [(a.result, a.user_id) for a in deps.logs.attempts] == [(LoginResult.USER_DISABLED, 2)]
    assert deps.tokens.created == []


def test_disabled_user_with_wrong_password_is_bad_credentials(deps):
    with pytest.raises(ServiceException) as ei:
        _service(deps).authenticate("frozen", "wrong")

    assert ei.value.error_code is errors.AUTH_LOGIN_BAD_CREDENTIALS
    assert [a.result for a in deps.logs.attempts] == [LoginResult.BAD_CREDENTIALS]


def test_login_captcha_failure_logs_and_skips_credentials(deps):
    deps.captcha.result = CaptchaResult.fail("滑块位置不正确")

    with pytest.raises(ServiceException) as ei:
        _service(deps, captcha_enable=True).login(
            AuthLoginReq(username="admin", password="admin123", captcha_verification="tok")
        )

    assert ei.value.error_code is errors.AUTH_LOGIN_CAPTCHA_CODE_ERROR
    assert "滑块位置不正确" in ei.value.msg
    assert deps.users.lookups == []
    assert [(a.result, a.user_id, a.username) for a in deps.logs.attempts] == [
        (LoginResult.CAPTCHA_CODE_ERROR, None, "admin")
    ]


def test_register_captcha_failure_does_not_log(deps):
    deps.captcha.result = CaptchaResult.fail("验证失败")

    with pytest.raises(ServiceException) as ei:
        _service(deps, captcha_enable=True).register(
            AuthRegisterReq(username="newbie", password="pw1234", captcha_verification="tok")
        )

    assert ei.value.error_code is errors.AUTH_REGISTER_CAPTCHA_CODE_ERROR
    assert deps.logs.attempts == []
    assert deps.users.registered == []


def test_blank_captcha_is_rejected_before_verification(deps):
    with pytest.raises(ServiceException) as ei:
        _service(deps, captcha_enable=True).login(AuthLoginReq(username="admin", password="admin123"))

    assert ei.value.error_code is errors.BAD_REQUEST
    assert deps.captcha.calls == []


def test_captcha_disabled_skips_verifier(deps):
    deps.captcha.result = CaptchaResult.fail("should not be consulted")

    _service(deps, captcha_enable=False).login(AuthLoginReq(username="admin", password="admin123"))

    assert deps.captcha.calls == []


def test_captcha_enabled_success_then_login(deps):
    _service(deps, captcha_enable=True).login(
        AuthLoginReq(username="admin", password="admin123", captcha_verification="tok")
    )

    assert deps.captcha.calls == ["tok"]
    assert [a.result for a in deps.logs.attempts] == [LoginResult.SUCCESS]


def test_register_issues_token_with_login_log_type(deps):
    resp = _service(deps).register(AuthRegisterReq(username="newbie", password="pw1234"))

    assert deps.users.registered == ["newbie"]
    assert resp.user_id == 3
    assert [(a.result, a.user_id, a.log_type) for a in deps.logs.attempts] == [
        (LoginResult.SUCCESS, 3, LoginLogType.LOGIN_USERNAME)
    ]
    assert len(deps.tokens.created) == 1


def test_refresh_token_writes_no_log(deps):
    resp = _service(deps).refresh_token("rt-1")

    assert resp.access_token == "at-new"
    assert deps.logs.attempts == []


def test_logout_unknown_token_is_noop(deps):
    _service(deps).logout("missing", LoginLogType.LOGOUT_SELF)

    assert deps.logs.attempts == []


def test_logout_logs_with_caller_log_type(deps):
    svc = _service(deps)
    resp = svc.login(AuthLoginReq(username="admin", password="admin123"))
    deps.logs.attempts.clear()

    svc.logout(resp.access_token, LoginLogType.LOGOUT_DELETE)

    assert [(a.result, a.user_id, a.username, a.log_type) for a in deps.logs.attempts] == [
        (LoginResult.SUCCESS, 1, "admin", LoginLogType.LOGOUT_DELETE)
    ]
    # second logout with the same token is a no-op
    svc.logout(resp.access_token, LoginLogType.LOGOUT_SELF)
    assert len(deps.logs.attempts) == 1


def test_logout_username_is_best_effort(deps):
    svc = _service(deps)
    resp = svc.login(AuthLoginReq(username="admin", password="admin123"))
    deps.logs.attempts.clear()
    del deps.users.users[1]

    svc.logout(resp.access_token, LoginLogType.LOGOUT_SELF)

    assert [(a.user_id, a.username) for a in deps.logs.attempts] == [(1, None)]


def test_failing_log_writer_does_not_abort_login(deps):
    deps.logs.fail = True

    resp = _service(deps).login(AuthLoginReq(username="admin", password="admin123"))

    assert resp.access_token == "at-1"


def test_failing_log_writer_keeps_original_error(deps):
    deps.logs.fail = True

    with pytest.raises(ServiceException) as ei:
        _service(deps).login(AuthLoginReq(username="admin", password="bad"))

    assert ei.value.error_code is errors.AUTH_LOGIN_BAD_CREDENTIALS


def test_reset_password_updates_and_commits(deps):
    _service(deps).reset_password(AuthResetPasswordReq(mobile="15601691300", password="newpass"))

    assert deps.users.password_updates == [(1, "newpass")]
    deps.s.commit.assert_called_once()
    deps.s.rollback.assert_not_called()


def test_reset_password_unknown_mobile(deps):
    with pytest.raises(ServiceException) as ei:
        _service(deps).reset_password(AuthResetPasswordReq(mobile="13800000000", password="newpass"))

    assert ei.value.error_code is errors.USER_MOBILE_NOT_EXISTS
    deps.s.commit.assert_not_called()


def test_reset_password_failure_rolls_back(deps):
    deps.users.fail_password_update = True

    with pytest.raises(RuntimeError):
        _service(deps).reset_password(AuthResetPasswordReq(mobile="15601691300", password="newpass"))

    deps.s.rollback.assert_called_once()
    deps.s.commit.assert_not_called()
