from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, SmallInteger, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.huike.constants import CommonStatus


class Base(DeclarativeBase):
    pass


class UserRole(Base):
    __tablename__ = "system_user_role"
    user_id: Mapped[int] = mapped_column(ForeignKey("system_users.id", ondelete="CASCADE"), primary_key=True)
    role_id: Mapped[int] = mapped_column(ForeignKey("system_role.id", ondelete="CASCADE"), primary_key=True)


class RolePermission(Base):
    __tablename__ = "system_role_permission"
    role_id: Mapped[int] = mapped_column(ForeignKey("system_role.id", ondelete="CASCADE"), primary_key=True)
    permission_id: Mapped[int] = mapped_column(ForeignKey("system_permission.id", ondelete="CASCADE"), primary_key=True)


class User(Base):
    __tablename__ = "system_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    nickname: Mapped[str | None] = mapped_column(String(30), nullable=True)
    mobile: Mapped[str | None] = mapped_column(String(11), nullable=True, index=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=CommonStatus.ENABLE)  # 0 enabled, 1 disabled
    login_ip: Mapped[str | None] = mapped_column(String(50), nullable=True)
    login_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    roles: Mapped[list["Role"]] = relationship(
        secondary="system_user_role",
        back_populates="users",
        lazy="selectin",
    )

    @property
    def is_active(self) -> bool:
        return not CommonStatus.is_disable(self.status)


class Role(Base):
    __tablename__ = "system_role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)  # e.g. "super_admin"
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    users: Mapped[list[User]] = relationship(secondary="system_user_role", back_populates="roles", lazy="selectin")
    permissions: Mapped[list["Permission"]] = relationship(
        secondary="system_role_permission",
        back_populates="roles",
        lazy="selectin",
    )


class Permission(Base):
    __tablename__ = "system_permission"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)  # e.g. "system:mail-template:query"
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    roles: Mapped[list[Role]] = relationship(secondary="system_role_permission", back_populates="permissions", lazy="selectin")


class AuditEvent(Base):
    """
    Append-only audit trail event for administrative changes.
    Login/logout attempts go to the dedicated login log instead.
    """

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_user_id: Mapped[int | None] = mapped_column(ForeignKey("system_users.id", ondelete="SET NULL"), nullable=True)
    actor_username: Mapped[str | None] = mapped_column(String(30), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "mail_template.create"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "MailTemplate"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string
    client_ip: Mapped[str | None] = mapped_column(String(50), nullable=True)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.huike.modules.logger.models import LoginLog  # noqa: E402,F401
from app.huike.modules.oauth2.models import OAuth2AccessToken, OAuth2RefreshToken  # noqa: E402,F401
from app.huike.modules.mail.models import MailTemplate  # noqa: E402,F401
from app.huike.modules.infra.models import File  # noqa: E402,F401
