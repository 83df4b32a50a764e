from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from werkzeug.utils import secure_filename

from app.huike.audit import record_event
from app.huike.errors import BAD_REQUEST, FILE_PRESIGN_NOT_SUPPORTED, exception
from app.huike.modules.infra.models import File
from app.huike.storage import PresignNotSupported

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.huike.models import User
    from app.huike.storage import Storage


@dataclass(frozen=True)
class FilePresignedUrl:
    config_id: int
    upload_url: str
    # url the front-end uses to read the file back once uploaded
    url: str
    # storage key; the front-end passes it to ``create_file`` after uploading
    path: str

    def to_dict(self) -> dict:
        return {"configId": self.config_id, "uploadUrl": self.upload_url, "url": self.url, "path": self.path}


def build_upload_path(name: str, directory: str | None = None, upload_date: date | None = None) -> str:
    """Build a unique storage key: ``[directory/]YYYYMMDD/<stem>_<millis><ext>``."""
    if upload_date is None:
        upload_date = date.today()
    safe = secure_filename(name) or "file.bin"
    p = PurePosixPath(safe)
    filename = f"{p.stem}_{int(time.time() * 1000)}{p.suffix}"
    prefix = (directory or "").strip().strip("/")
    parts = [prefix] if prefix else []
    parts += [upload_date.strftime("%Y%m%d"), filename]
    return "/".join(parts)


def get_file_presigned_url(storage: "Storage", config_id: int, name: str, directory: str | None = None) -> FilePresignedUrl:
    if not (name or "").strip():
        raise exception(BAD_REQUEST, "文件名称不能为空")
    path = build_upload_path(name, directory)
    try:
        upload_url = storage.presigned_put_url(path)
    except PresignNotSupported as e:
        raise exception(FILE_PRESIGN_NOT_SUPPORTED) from e
    return FilePresignedUrl(config_id=config_id, upload_url=upload_url, url=storage.public_url(path), path=path)


def create_file(s: "Session", payload: dict, user: "User | None") -> File:
    f = File(
        config_id=payload.get("configId"),
        name=(payload.get("name") or "").strip(),
        path=(payload.get("path") or "").strip(),
        url=(payload.get("url") or "").strip(),
        type=(payload.get("type") or "").strip() or None,
        size=payload.get("size"),
    )
    s.add(f)
    s.flush()

    record_event(
        s,
        actor=user,
        action="file.create",
        entity_type="File",
        entity_id=str(f.id),
        metadata={"path": f.path, "size": f.size},
    )
    return f


def validate_file_payload(payload: dict) -> list[str]:
    errors = []
    for key, label in (("name", "原文件名"), ("path", "文件路径"), ("url", "访问地址")):
        if not str(payload.get(key) or "").strip():
            errors.append(f"{label}不能为空")
    size = payload.get("size")
    if size is not None and (not isinstance(size, int) or size < 0):
        errors.append("文件大小不正确")
    return errors
