from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.huike.db import savepoint
from app.huike.modules.logger.models import LoginLog


@dataclass(frozen=True)
class LoginAttempt:
    log_type: int
    user_id: int | None
    user_type: int
    username: str | None
    result: int
    trace_id: str | None = None
    user_ip: str | None = None
    user_agent: str | None = None


class LoginLogService:
    """
    Writes login log rows on the caller's session, each in its own savepoint,
    so a rejected row never poisons the login/logout transaction around it.
    """

    def __init__(self, s: Session) -> None:
        self.s = s

    def create_login_log(self, attempt: LoginAttempt) -> LoginLog:
        log = LoginLog(
            log_type=attempt.log_type,
            trace_id=(attempt.trace_id or "")[:64] or None,
            user_id=attempt.user_id,
            user_type=attempt.user_type,
            username=(attempt.username or "")[:50] or None,
            result=attempt.result,
            user_ip=(attempt.user_ip or "")[:50] or None,
            user_agent=(attempt.user_agent or "")[:512] or None,
        )
        with savepoint(self.s):
            self.s.add(log)
        return log
