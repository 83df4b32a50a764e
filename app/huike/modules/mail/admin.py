from __future__ import annotations

from flask import Blueprint, current_app, g, request

from app.huike.db import db_session
from app.huike.errors import BAD_REQUEST, MAIL_TEMPLATE_NOT_EXISTS, exception
from app.huike.modules.mail.service import (
    MailTemplateService,
    save_req_from_payload,
    validate_mail_template_payload,
)
from app.huike.rbac import require_permission
from app.huike.utils import parse_id_list, success

bp = Blueprint("mail_template", __name__)


def mail_template_service() -> MailTemplateService:
    return MailTemplateService(
        db_session(),
        current_app.extensions["mail_template_cache"],
        actor=getattr(g, "current_user", None),
    )


def _int_arg(name: str, default: int | None = None) -> int | None:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise exception(BAD_REQUEST, f"{name} 必须是数字") from None


# ---------- Create / Update ----------
@bp.post("/create")
@require_permission("system:mail-template:create")
def create_mail_template():
    payload = request.get_json(silent=True) or {}
    errors = validate_mail_template_payload(payload)
    if errors:
        raise exception(BAD_REQUEST, "; ".join(errors))

    svc = mail_template_service()
    template_id = svc.create_mail_template(save_req_from_payload(payload))
    return success(template_id)


@bp.put("/update")
@require_permission("system:mail-template:update")
def update_mail_template():
    payload = request.get_json(silent=True) or {}
    errors = validate_mail_template_payload(payload, require_id=True)
    if errors:
        raise exception(BAD_REQUEST, "; ".join(errors))

    svc = mail_template_service()
    svc.update_mail_template(save_req_from_payload(payload))
    return success(True)


# ---------- Delete ----------
@bp.delete("/delete")
@require_permission("system:mail-template:delete")
def delete_mail_template():
    template_id = _int_arg("id")
    if template_id is None:
        raise exception(BAD_REQUEST, "id 不能为空")
    svc = mail_template_service()
    svc.delete_mail_template(template_id)
    return success(True)


@bp.delete("/delete-list")
@require_permission("system:mail-template:delete")
def delete_mail_template_list():
    try:
        ids = parse_id_list(request.args.get("ids"))
    except ValueError:
        raise exception(BAD_REQUEST, "ids 必须是数字") from None
    svc = mail_template_service()
    svc.delete_mail_template_list(ids)
    return success(True)


# ---------- Read ----------
@bp.get("/get")
@require_permission("system:mail-template:query")
def get_mail_template():
    template_id = _int_arg("id")
    template = mail_template_service().get_mail_template(template_id) if template_id is not None else None
    if template is None:
        raise exception(MAIL_TEMPLATE_NOT_EXISTS)
    return success(template.to_dict())


@bp.get("/page")
@require_permission("system:mail-template:query")
def get_mail_template_page():
    page = mail_template_service().get_mail_template_page(
        page_no=_int_arg("pageNo", 1),
        page_size=max(1, min(_int_arg("pageSize", 10), 100)),
        name=(request.args.get("name") or "").strip() or None,
        code=(request.args.get("code") or "").strip() or None,
        account_id=_int_arg("accountId"),
        status=_int_arg("status"),
    )
    return success({"list": [t.to_dict() for t in page.items], "total": page.total})


@bp.get("/simple-list")
@require_permission("system:mail-template:query")
def get_simple_template_list():
    templates = mail_template_service().get_mail_template_list()
    return success([{"id": t.id, "name": t.name} for t in templates])
