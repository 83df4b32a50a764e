from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.huike.constants import CommonStatus
from app.huike.models import Base


class MailTemplate(Base):
    __tablename__ = "system_mail_template"
    __table_args__ = (
        Index("idx_mail_template_account_id", "account_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(63), nullable=False)
    code: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)  # sender display name
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    params: Mapped[list | None] = mapped_column(JSON, nullable=True)  # parsed from title + content
    status: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=CommonStatus.ENABLE)
    remark: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "accountId": self.account_id,
            "nickname": self.nickname,
            "title": self.title,
            "content": self.content,
            "params": list(self.params or []),
            "status": self.status,
            "remark": self.remark,
            "createTime": int(self.created_at.timestamp() * 1000) if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MailTemplate":
        """Rebuild a detached template from ``to_dict`` output (cache round-trip)."""
        created = data.get("createTime")
        return cls(
            id=data["id"],
            name=data["name"],
            code=data["code"],
            account_id=data["accountId"],
            nickname=data.get("nickname"),
            title=data["title"],
            content=data["content"],
            params=data.get("params"),
            status=data["status"],
            remark=data.get("remark"),
            created_at=datetime.fromtimestamp(created / 1000) if created is not None else None,
        )
