import time

from app.huike.cache import MemoryCache, RedisCache, cache_from_config
from app.huike.captcha import SignedCaptchaService


def test_memory_cache_get_put_clear():
    cache = MemoryCache()
    assert cache.get("a") is None
    cache.put("a", {"id": 1})
    cache.put("b", 2)
    assert cache.get("a") == {"id": 1}

    cache.clear()
    assert cache.get("a") is None
    assert cache.get("b") is None


def test_memory_cache_ttl():
    cache = MemoryCache(ttl=0.01)
    cache.put("a", 1)
    time.sleep(0.02)
    assert cache.get("a") is None


def test_cache_from_config():
    assert isinstance(cache_from_config({}, "mail_template"), MemoryCache)
    redis_cache = cache_from_config({"CACHE_BACKEND": "redis", "REDIS_URL": "redis://cache:6379/1"}, "mail_template")
    assert isinstance(redis_cache, RedisCache)
    assert redis_cache.namespace == "mail_template"


def test_signed_captcha_token_is_single_use():
    svc = SignedCaptchaService("secret", MemoryCache())
    token = svc.issue()

    assert svc.verification(token).success
    second = svc.verification(token)
    assert not second.success
    assert second.rep_msg


def test_signed_captcha_rejects_foreign_and_expired_tokens():
    svc = SignedCaptchaService("secret", MemoryCache(), max_age=60)
    foreign = SignedCaptchaService("other-secret", MemoryCache()).issue()
    assert not svc.verification(foreign).success
    assert not svc.verification("garbage").success

    expiring = SignedCaptchaService("secret", MemoryCache(), max_age=-1)
    assert not expiring.verification(expiring.issue()).success


def test_challenge_exchanged_once_for_verification_token():
    svc = SignedCaptchaService("secret", MemoryCache())
    challenge = svc.get()

    result = svc.check(challenge)
    assert result.success
    assert svc.verification(result.captcha_verification).success

    assert not svc.check(challenge).success
    # a challenge is not a verification token
    assert not svc.verification(svc.get()).success
