from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from werkzeug.security import check_password_hash, generate_password_hash

from app.huike.constants import CommonStatus
from app.huike.errors import USER_NOT_EXISTS, USER_USERNAME_EXISTS, exception
from app.huike.models import User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.huike.modules.auth.service import AuthRegisterReq


class UserService:
    """Admin user store: lookups, password checks and the few mutations auth needs."""

    def __init__(self, s: "Session") -> None:
        self.s = s

    def get_user(self, user_id: int) -> User | None:
        return self.s.get(User, user_id)

    def get_user_by_username(self, username: str) -> User | None:
        return self.s.query(User).filter(User.username == username).one_or_none()

    def get_user_by_mobile(self, mobile: str) -> User | None:
        return self.s.query(User).filter(User.mobile == mobile).first()

    def is_password_match(self, raw_password: str, password_hash: str) -> bool:
        return check_password_hash(password_hash, raw_password)

    def update_user_login(self, user_id: int, login_ip: str | None) -> None:
        user = self.s.get(User, user_id)
        if user is None:
            return
        user.login_ip = (login_ip or "")[:50] or None
        user.login_date = datetime.utcnow()

    def update_user_password(self, user_id: int, password: str) -> None:
        user = self.s.get(User, user_id)
        if user is None:
            raise exception(USER_NOT_EXISTS)
        user.password_hash = generate_password_hash(password)

    def register_user(self, req: "AuthRegisterReq") -> int:
        if self.get_user_by_username(req.username) is not None:
            raise exception(USER_USERNAME_EXISTS)
        user = User(
            username=req.username,
            nickname=req.nickname or req.username,
            password_hash=generate_password_hash(req.password),
            status=CommonStatus.ENABLE,
        )
        self.s.add(user)
        self.s.flush()
        return user.id
