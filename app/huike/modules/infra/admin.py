from __future__ import annotations

from flask import Blueprint, current_app, g, request

from app.huike.db import db_session
from app.huike.errors import BAD_REQUEST, exception
from app.huike.modules.infra.service import create_file, get_file_presigned_url, validate_file_payload
from app.huike.rbac import require_permission
from app.huike.storage import storage_from_config
from app.huike.utils import success

bp = Blueprint("file", __name__)


@bp.get("/presigned-url")
@require_permission("infra:file:create")
def presigned_url():
    presigned = get_file_presigned_url(
        storage_from_config(current_app.config),
        current_app.config["STORAGE_CONFIG_ID"],
        (request.args.get("name") or "").strip(),
        (request.args.get("directory") or "").strip() or None,
    )
    return success(presigned.to_dict())


@bp.post("/create")
@require_permission("infra:file:create")
def create():
    payload = request.get_json(silent=True) or {}
    errors = validate_file_payload(payload)
    if errors:
        raise exception(BAD_REQUEST, "; ".join(errors))

    s = db_session()
    f = create_file(s, payload, getattr(g, "current_user", None))
    s.commit()
    return success(f.id)
