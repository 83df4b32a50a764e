"""
Captcha verification.

The front-end captcha widget fetches a challenge (``/captcha/get``), and once
the user has solved it, trades the challenge for a short-lived
``captchaVerification`` token (``/captcha/check``). That token is submitted
together with the login/register form and verified here. Puzzle rendering and
scoring live in the widget.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.huike.cache import Cache


@dataclass(frozen=True)
class CaptchaResult:
    success: bool
    rep_msg: str = ""
    captcha_verification: str | None = None

    @classmethod
    def ok(cls, captcha_verification: str | None = None) -> "CaptchaResult":
        return cls(success=True, captcha_verification=captcha_verification)

    @classmethod
    def fail(cls, rep_msg: str) -> "CaptchaResult":
        return cls(success=False, rep_msg=rep_msg)


class CaptchaService:
    def get(self) -> str:
        raise NotImplementedError

    def check(self, challenge: str) -> CaptchaResult:
        raise NotImplementedError

    def verification(self, captcha_verification: str) -> CaptchaResult:
        raise NotImplementedError


class SignedCaptchaService(CaptchaService):
    """
    Challenges and verification tokens are nonces signed with the app secret.

    Each is accepted once, within ``max_age`` seconds; used nonces are kept
    in ``used_tokens`` (a cache whose TTL should be at least ``max_age``).
    """

    salt = "captcha-verification"
    challenge_salt = "captcha-challenge"

    def __init__(self, secret_key: str, used_tokens: Cache, *, max_age: int = 120) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key, salt=self.salt)
        self._challenges = URLSafeTimedSerializer(secret_key, salt=self.challenge_salt)
        self._used = used_tokens
        self.max_age = max_age

    def get(self) -> str:
        return self._challenges.dumps({"nonce": secrets.token_hex(16)})

    def check(self, challenge: str) -> CaptchaResult:
        result = self._consume(self._challenges, challenge)
        if not result.success:
            return result
        return CaptchaResult.ok(self.issue())

    def issue(self) -> str:
        return self._serializer.dumps({"nonce": secrets.token_hex(16)})

    def verification(self, captcha_verification: str) -> CaptchaResult:
        return self._consume(self._serializer, captcha_verification)

    def _consume(self, serializer: URLSafeTimedSerializer, token: str) -> CaptchaResult:
        try:
            payload = serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            return CaptchaResult.fail("验证码已失效，请重新获取")
        except BadSignature:
            return CaptchaResult.fail("验证失败")
        nonce = payload.get("nonce") if isinstance(payload, dict) else None
        if not nonce:
            return CaptchaResult.fail("验证失败")
        if self._used.get(nonce):
            return CaptchaResult.fail("验证码已使用，请重新获取")
        self._used.put(nonce, True)
        return CaptchaResult.ok()
