from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from app.huike.models import Base


class LoginLog(Base):
    """Append-only record of one login or logout attempt."""

    __tablename__ = "system_login_log"
    __table_args__ = (
        Index("idx_login_log_user_id", "user_id"),
        Index("idx_login_log_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    log_type: Mapped[int] = mapped_column(Integer, nullable=False)  # LoginLogType
    trace_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # null when the user is unknown
    user_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    username: Mapped[str | None] = mapped_column(String(50), nullable=True)
    result: Mapped[int] = mapped_column(SmallInteger, nullable=False)  # LoginResult
    user_ip: Mapped[str | None] = mapped_column(String(50), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
