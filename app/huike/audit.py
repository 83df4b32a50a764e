import json
from typing import Any

from sqlalchemy.orm import Session

from app.huike.models import AuditEvent, User
from app.huike.utils import get_client_ip, get_trace_id


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append-only audit event helper.
    """
    ev = AuditEvent(
        request_id=request_id or get_trace_id(),
        actor_user_id=actor.id if actor else None,
        actor_username=actor.username if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=json.dumps(metadata, sort_keys=True, ensure_ascii=False) if metadata else None,
        client_ip=get_client_ip(),
    )
    s.add(ev)
    return ev
