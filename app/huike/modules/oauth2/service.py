from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.huike.errors import (
    OAUTH2_GRANT_CLIENT_ID_MISMATCH,
    OAUTH2_GRANT_REFRESH_TOKEN_EXPIRE,
    OAUTH2_GRANT_REFRESH_TOKEN_INVALID,
    exception,
)
from app.huike.modules.oauth2.models import OAuth2AccessToken, OAuth2RefreshToken

logger = logging.getLogger(__name__)


def generate_token() -> str:
    return secrets.token_hex(16)


class OAuth2TokenService:
    def __init__(self, s: Session, *, access_token_ttl: int = 30 * 60, refresh_token_ttl: int = 30 * 24 * 60 * 60) -> None:
        self.s = s
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl

    def create_access_token(
        self, user_id: int, user_type: int, client_id: str, scopes: list[str] | None = None
    ) -> OAuth2AccessToken:
        refresh = OAuth2RefreshToken(
            refresh_token=generate_token(),
            user_id=user_id,
            user_type=user_type,
            client_id=client_id,
            scopes=scopes,
            expires_time=datetime.utcnow() + timedelta(seconds=self.refresh_token_ttl),
        )
        self.s.add(refresh)
        return self._create_access_token(refresh)

    def refresh_access_token(self, refresh_token: str, client_id: str) -> OAuth2AccessToken:
        refresh = (
            self.s.query(OAuth2RefreshToken)
            .filter(OAuth2RefreshToken.refresh_token == refresh_token)
            .one_or_none()
        )
        if refresh is None:
            raise exception(OAUTH2_GRANT_REFRESH_TOKEN_INVALID)
        if refresh.client_id != client_id:
            raise exception(OAUTH2_GRANT_CLIENT_ID_MISMATCH)

        # Access tokens minted from this refresh token are superseded
        self.s.query(OAuth2AccessToken).filter(OAuth2AccessToken.refresh_token == refresh_token).delete(
            synchronize_session=False
        )

        if refresh.expires_time <= datetime.utcnow():
            self.s.delete(refresh)
            self.s.commit()
            raise exception(OAUTH2_GRANT_REFRESH_TOKEN_EXPIRE)

        return self._create_access_token(refresh)

    def check_access_token(self, access_token: str) -> OAuth2AccessToken | None:
        token = self._get_access_token(access_token)
        if token is None or token.is_expired():
            return None
        return token

    def remove_access_token(self, access_token: str) -> OAuth2AccessToken | None:
        token = self._get_access_token(access_token)
        if token is None:
            return None
        self.s.delete(token)
        self.s.query(OAuth2RefreshToken).filter(OAuth2RefreshToken.refresh_token == token.refresh_token).delete(
            synchronize_session=False
        )
        self.s.flush()
        return token

    def _get_access_token(self, access_token: str) -> OAuth2AccessToken | None:
        if not access_token:
            return None
        return (
            self.s.query(OAuth2AccessToken)
            .filter(OAuth2AccessToken.access_token == access_token)
            .one_or_none()
        )

    def _create_access_token(self, refresh: OAuth2RefreshToken) -> OAuth2AccessToken:
        token = OAuth2AccessToken(
            access_token=generate_token(),
            refresh_token=refresh.refresh_token,
            user_id=refresh.user_id,
            user_type=refresh.user_type,
            client_id=refresh.client_id,
            scopes=refresh.scopes,
            expires_time=datetime.utcnow() + timedelta(seconds=self.access_token_ttl),
        )
        self.s.add(token)
        self.s.flush()
        logger.debug("Issued access token for user_id=%s client_id=%s", token.user_id, token.client_id)
        return token
