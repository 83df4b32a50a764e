from dataclasses import replace

import pytest
from werkzeug.security import generate_password_hash

from app.huike import create_app
from app.huike.constants import CommonStatus, LoginLogType, LoginResult
from app.huike.db import session_scope
from app.huike.errors import (
    AUTH_CAPTCHA_CHECK_ERROR,
    AUTH_LOGIN_BAD_CREDENTIALS,
    AUTH_LOGIN_CAPTCHA_CODE_ERROR,
    OAUTH2_GRANT_REFRESH_TOKEN_INVALID,
    UNAUTHORIZED,
    USER_USERNAME_EXISTS,
)
from app.huike.models import Base, Permission, Role, User
from app.huike.modules.auth import admin as auth_admin
from app.huike.modules.logger.models import LoginLog
from app.huike.modules.logger.service import LoginLogService
from app.huike.modules.oauth2.models import OAuth2AccessToken

AUTH = "/admin-api/system/auth"
CAPTCHA = "/admin-api/system/captcha"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CAPTCHA_ENABLE", "false")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("CACHE_BACKEND", "memory")

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        p = Permission(key="system:mail-template:query", name="Mail templates: query")
        r = Role(key="admin", name="Administrator")
        r.permissions.append(p)
        u = User(
            username="admin",
            nickname="Admin",
            mobile="15601691300",
            password_hash=generate_password_hash("admin123"),
            status=CommonStatus.ENABLE,
        )
        u.roles.append(r)
        frozen = User(username="frozen", password_hash=generate_password_hash("frozen123"), status=CommonStatus.DISABLE)
        s.add_all([p, r, u, frozen])

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, username="admin", password="admin123"):
    return client.post(f"{AUTH}/login", json={"username": username, "password": password})


def _login_logs(app):
    with session_scope(app) as s:
        return [(log.username, log.user_id, log.result, log.log_type) for log in s.query(LoginLog).order_by(LoginLog.id)]


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_login_and_permission_info(client, app):
    r = client.get(f"{AUTH}/get-permission-info")
    assert r.json["code"] == UNAUTHORIZED.code

    r = _login(client)
    assert r.status_code == 200
    body = r.json
    assert body["code"] == 0
    assert body["data"]["userId"]
    token = body["data"]["accessToken"]

    r = client.get(f"{AUTH}/get-permission-info", headers={"Authorization": f"Bearer {token}"})
    assert r.json["code"] == 0
    assert r.json["data"]["user"]["username"] == "admin"
    assert r.json["data"]["permissions"] == ["system:mail-template:query"]

    logs = _login_logs(app)
    assert logs[-1][0] == "admin"
    assert logs[-1][2] == LoginResult.SUCCESS
    with session_scope(app) as s:
        user = s.query(User).filter(User.username == "admin").one()
        assert user.login_date is not None


def test_login_bad_password_is_logged(client, app):
    r = _login(client, password="wrong")
    assert r.status_code == 200
    assert r.json["code"] == AUTH_LOGIN_BAD_CREDENTIALS.code

    logs = _login_logs(app)
    assert len(logs) == 1
    assert logs[0][0] == "admin"
    assert logs[0][1] is not None
    assert logs[0][2] == LoginResult.BAD_CREDENTIALS

    with session_scope(app) as s:
        assert s.query(OAuth2AccessToken).count() == 0


def test_login_disabled_user(client, app):
    r = _login(client, username="frozen", password="frozen123")
    assert r.json["code"] != 0
    assert _login_logs(app)[0][2] == LoginResult.USER_DISABLED


def test_login_missing_fields(client):
    r = client.post(f"{AUTH}/login", json={"username": ""})
    assert r.json["code"] == 400


def _captcha_verification(client):
    challenge = client.post(f"{CAPTCHA}/get").json["data"]["token"]
    r = client.post(f"{CAPTCHA}/check", json={"token": challenge})
    assert r.json["code"] == 0
    return challenge, r.json["data"]["captchaVerification"]


def test_login_with_captcha_enabled(client, app):
    app.config["CAPTCHA_ENABLE"] = True

    r = client.post(f"{AUTH}/login", json={"username": "admin", "password": "admin123", "captchaVerification": "forged"})
    assert r.json["code"] == AUTH_LOGIN_CAPTCHA_CODE_ERROR.code
    assert _login_logs(app)[0][2] == LoginResult.CAPTCHA_CODE_ERROR

    challenge, captcha_token = _captcha_verification(client)
    r = client.post(
        f"{AUTH}/login",
        json={"username": "admin", "password": "admin123", "captchaVerification": captcha_token},
    )
    assert r.json["code"] == 0

    # verification tokens and challenges are single-use
    r = client.post(
        f"{AUTH}/login",
        json={"username": "admin", "password": "admin123", "captchaVerification": captcha_token},
    )
    assert r.json["code"] == AUTH_LOGIN_CAPTCHA_CODE_ERROR.code
    r = client.post(f"{CAPTCHA}/check", json={"token": challenge})
    assert r.json["code"] == AUTH_CAPTCHA_CHECK_ERROR.code


def test_captcha_check_rejects_bad_challenge(client):
    assert client.post(f"{CAPTCHA}/check", json={}).json["code"] == 400
    assert client.post(f"{CAPTCHA}/check", json={"token": "forged"}).json["code"] == AUTH_CAPTCHA_CHECK_ERROR.code


class RejectingLoginLogService(LoginLogService):
    def create_login_log(self, attempt):
        # log_type is NOT NULL, so the database refuses the row
        return super().create_login_log(replace(attempt, log_type=None))


def test_rejected_login_log_does_not_abort_login(client, app, monkeypatch):
    monkeypatch.setattr(auth_admin, "LoginLogService", RejectingLoginLogService)

    r = _login(client)
    assert r.json["code"] == 0
    assert r.json["data"]["accessToken"]

    r = _login(client, password="wrong")
    assert r.json["code"] == AUTH_LOGIN_BAD_CREDENTIALS.code

    r = client.post(f"{AUTH}/register", json={"username": "newbie", "password": "pw1234"})
    assert r.json["code"] == 0

    r = client.post(f"{AUTH}/logout", headers={"Authorization": f"Bearer {r.json['data']['accessToken']}"})
    assert r.json["code"] == 0

    assert _login_logs(app) == []
    with session_scope(app) as s:
        assert s.query(User).filter(User.username == "admin").one().login_date is not None
        assert s.query(User).filter(User.username == "newbie").count() == 1
        assert s.query(OAuth2AccessToken).count() == 1


def test_login_log_clips_oversized_request_values(client, app):
    r = client.post(
        f"{AUTH}/login",
        json={"username": "admin", "password": "admin123"},
        headers={"X-Request-Id": "r" * 100, "X-Forwarded-For": "9" * 80},
    )
    assert r.json["code"] == 0
    with session_scope(app) as s:
        log = s.query(LoginLog).one()
        assert log.trace_id == "r" * 64
        assert log.user_ip == "9" * 50


def test_refresh_token(client, app):
    data = _login(client).json["data"]
    logs_before = len(_login_logs(app))

    r = client.post(f"{AUTH}/refresh-token", query_string={"refreshToken": data["refreshToken"]})
    assert r.json["code"] == 0
    new_token = r.json["data"]["accessToken"]
    assert new_token != data["accessToken"]
    assert len(_login_logs(app)) == logs_before

    # the superseded access token no longer authenticates
    r = client.get(f"{AUTH}/get-permission-info", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert r.json["code"] == UNAUTHORIZED.code
    r = client.get(f"{AUTH}/get-permission-info", headers={"Authorization": f"Bearer {new_token}"})
    assert r.json["code"] == 0

    r = client.post(f"{AUTH}/refresh-token", query_string={"refreshToken": "nope"})
    assert r.json["code"] == OAUTH2_GRANT_REFRESH_TOKEN_INVALID.code


def test_logout_is_idempotent(client, app):
    token = _login(client).json["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    r = client.post(f"{AUTH}/logout", headers=headers)
    assert r.json == {"code": 0, "data": True, "msg": ""}
    logs = _login_logs(app)
    assert logs[-1] == ("admin", logs[-1][1], LoginResult.SUCCESS, LoginLogType.LOGOUT_SELF)

    r = client.post(f"{AUTH}/logout", headers=headers)
    assert r.json["code"] == 0
    assert len(_login_logs(app)) == len(logs)

    r = client.get(f"{AUTH}/get-permission-info", headers=headers)
    assert r.json["code"] == UNAUTHORIZED.code


def test_register_then_duplicate(client, app):
    r = client.post(f"{AUTH}/register", json={"username": "newbie", "password": "pw1234", "nickname": "New"})
    assert r.json["code"] == 0
    assert r.json["data"]["accessToken"]

    r = client.post(f"{AUTH}/register", json={"username": "newbie", "password": "pw1234"})
    assert r.json["code"] == USER_USERNAME_EXISTS.code

    r = _login(client, username="newbie", password="pw1234")
    assert r.json["code"] == 0


def test_reset_password(client):
    r = client.post(f"{AUTH}/reset-password", json={"mobile": "15601691300", "password": "changed1"})
    assert r.json["code"] == 0

    assert _login(client).json["code"] == AUTH_LOGIN_BAD_CREDENTIALS.code
    assert _login(client, password="changed1").json["code"] == 0

    r = client.post(f"{AUTH}/reset-password", json={"mobile": "13800000000", "password": "changed1"})
    assert r.json["code"] != 0
