from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.huike.audit import record_event
from app.huike.constants import CommonStatus
from app.huike.errors import MAIL_TEMPLATE_CODE_EXISTS, MAIL_TEMPLATE_NOT_EXISTS, exception
from app.huike.modules.mail import formatter
from app.huike.modules.mail.models import MailTemplate

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.huike.cache import Cache
    from app.huike.models import User


@dataclass
class MailTemplateSaveReq:
    name: str
    code: str
    account_id: int
    title: str
    content: str
    status: int = CommonStatus.ENABLE
    nickname: str | None = None
    remark: str | None = None
    id: int | None = None


@dataclass(frozen=True)
class PageResult:
    items: list
    total: int


def validate_mail_template_payload(payload: dict, *, require_id: bool = False) -> list[str]:
    """Validate create/update payload (camelCase API keys). Returns list of errors."""
    errors = []
    if require_id and payload.get("id") in (None, ""):
        errors.append("模版编号不能为空")
    for key, label in (("name", "模版名称"), ("code", "模版编码"), ("title", "模版标题"), ("content", "模版内容")):
        if not str(payload.get(key) or "").strip():
            errors.append(f"{label}不能为空")
    account_id = payload.get("accountId")
    if account_id in (None, ""):
        errors.append("邮箱账号不能为空")
    else:
        try:
            int(account_id)
        except (TypeError, ValueError):
            errors.append("邮箱账号必须是数字")
    status = payload.get("status")
    if status not in (None, "") and str(status) not in {str(int(s)) for s in CommonStatus}:
        errors.append("状态必须是 0 或 1")
    return errors


def save_req_from_payload(payload: dict) -> MailTemplateSaveReq:
    status = payload.get("status")
    return MailTemplateSaveReq(
        id=int(payload["id"]) if payload.get("id") not in (None, "") else None,
        name=str(payload.get("name") or "").strip(),
        code=str(payload.get("code") or "").strip(),
        account_id=int(payload["accountId"]),
        title=str(payload.get("title") or ""),
        content=str(payload.get("content") or ""),
        status=int(status) if status not in (None, "") else CommonStatus.ENABLE,
        nickname=(payload.get("nickname") or "").strip() or None,
        remark=(payload.get("remark") or "").strip() or None,
    )


class MailTemplateService:
    """
    Mail template CRUD, lookup by code (read-through cache) and formatting.

    The cache is keyed by code while updates and deletes address templates by
    id, so every change clears the whole cache. Mutations commit their own
    unit of work; the cache is cleared only after the commit.
    """

    def __init__(self, s: "Session", cache: "Cache", *, actor: "User | None" = None) -> None:
        self.s = s
        self.cache = cache
        self.actor = actor

    def create_mail_template(self, req: MailTemplateSaveReq) -> int:
        self.validate_code_unique(None, req.code)

        now = datetime.utcnow()
        template = MailTemplate(
            name=req.name,
            code=req.code,
            account_id=req.account_id,
            nickname=req.nickname,
            title=req.title,
            content=req.content,
            params=self.parse_template_title_and_content_params(req.title, req.content),
            status=req.status,
            remark=req.remark,
            created_at=now,
            updated_at=now,
        )
        self.s.add(template)
        self.s.flush()

        record_event(
            self.s,
            actor=self.actor,
            action="mail_template.create",
            entity_type="MailTemplate",
            entity_id=str(template.id),
            metadata={"code": template.code, "name": template.name},
        )
        self.s.commit()
        return template.id

    def update_mail_template(self, req: MailTemplateSaveReq) -> None:
        template = self._validate_mail_template_exists(req.id)
        self.validate_code_unique(req.id, req.code)

        template.name = req.name
        template.code = req.code
        template.account_id = req.account_id
        template.nickname = req.nickname
        template.title = req.title
        template.content = req.content
        template.params = self.parse_template_title_and_content_params(req.title, req.content)
        template.status = req.status
        template.remark = req.remark
        template.updated_at = datetime.utcnow()
        self.s.flush()

        record_event(
            self.s,
            actor=self.actor,
            action="mail_template.edit",
            entity_type="MailTemplate",
            entity_id=str(template.id),
            metadata={"code": template.code, "name": template.name},
        )
        self._commit_and_clear_cache()

    def delete_mail_template(self, template_id: int) -> None:
        template = self._validate_mail_template_exists(template_id)
        self.s.delete(template)
        self.s.flush()

        record_event(
            self.s,
            actor=self.actor,
            action="mail_template.delete",
            entity_type="MailTemplate",
            entity_id=str(template_id),
            metadata={"code": template.code},
        )
        self._commit_and_clear_cache()

    def delete_mail_template_list(self, ids: list[int]) -> None:
        if not ids:
            return
        self.s.query(MailTemplate).filter(MailTemplate.id.in_(ids)).delete(synchronize_session=False)
        self.s.flush()

        record_event(
            self.s,
            actor=self.actor,
            action="mail_template.delete",
            entity_type="MailTemplate",
            entity_id=",".join(str(i) for i in ids),
        )
        self._commit_and_clear_cache()

    def validate_code_unique(self, template_id: int | None, code: str) -> None:
        template = self.s.query(MailTemplate).filter(MailTemplate.code == code).one_or_none()
        if template is None:
            return
        # creating (no id) or another template already holds the code
        if template_id is None or template_id != template.id:
            raise exception(MAIL_TEMPLATE_CODE_EXISTS, code)

    def get_mail_template(self, template_id: int) -> MailTemplate | None:
        return self.s.get(MailTemplate, template_id)

    def get_mail_template_by_code_from_cache(self, code: str) -> MailTemplate | None:
        cached = self.cache.get(code)
        if cached is not None:
            return MailTemplate.from_dict(cached)
        template = self.s.query(MailTemplate).filter(MailTemplate.code == code).one_or_none()
        if template is not None:
            self.cache.put(code, template.to_dict())
        return template

    def get_mail_template_page(
        self,
        *,
        page_no: int = 1,
        page_size: int = 10,
        name: str | None = None,
        code: str | None = None,
        account_id: int | None = None,
        status: int | None = None,
    ) -> PageResult:
        q = self.s.query(MailTemplate)
        if name:
            q = q.filter(MailTemplate.name.ilike(f"%{name}%"))
        if code:
            q = q.filter(MailTemplate.code.ilike(f"%{code}%"))
        if account_id is not None:
            q = q.filter(MailTemplate.account_id == account_id)
        if status is not None:
            q = q.filter(MailTemplate.status == status)

        total = q.with_entities(func.count(MailTemplate.id)).scalar() or 0
        rows = (
            q.order_by(MailTemplate.id.desc())
            .offset((max(page_no, 1) - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return PageResult(items=rows, total=total)

    def get_mail_template_list(self) -> list[MailTemplate]:
        return self.s.query(MailTemplate).order_by(MailTemplate.id.asc()).all()

    def get_mail_template_count_by_account_id(self, account_id: int) -> int:
        return self.s.query(func.count(MailTemplate.id)).filter(MailTemplate.account_id == account_id).scalar() or 0

    def format_mail_template_content(self, content: str, params: Mapping[str, Any]) -> str:
        return formatter.format_mail_template_content(content, params)

    def parse_template_title_and_content_params(self, title: str, content: str) -> list[str]:
        return formatter.extract_template_params(title, content)

    def parse_template_content_params(self, content: str) -> list[str]:
        return formatter.extract_params(content)

    def _validate_mail_template_exists(self, template_id: int | None) -> MailTemplate:
        template = self.s.get(MailTemplate, template_id) if template_id is not None else None
        if template is None:
            raise exception(MAIL_TEMPLATE_NOT_EXISTS)
        return template

    def _commit_and_clear_cache(self) -> None:
        # after commit, so a racing read-through cannot re-cache the old row
        self.s.commit()
        self.cache.clear()
