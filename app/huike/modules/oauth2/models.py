from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from app.huike.models import Base


class OAuth2RefreshToken(Base):
    __tablename__ = "system_oauth2_refresh_token"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    refresh_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False)
    scopes: Mapped[list | None] = mapped_column(JSON, nullable=True)
    expires_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class OAuth2AccessToken(Base):
    __tablename__ = "system_oauth2_access_token"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    access_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    refresh_token: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False)
    scopes: Mapped[list | None] = mapped_column(JSON, nullable=True)
    expires_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_time <= (now or datetime.utcnow())
