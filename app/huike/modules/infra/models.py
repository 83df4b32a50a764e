from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.huike.models import Base


class File(Base):
    """A file uploaded by a client through a presigned URL."""

    __tablename__ = "infra_file"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    config_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # storage config the upload went to
    name: Mapped[str] = mapped_column(String(256), nullable=False)  # original filename
    path: Mapped[str] = mapped_column(String(512), nullable=False)  # storage key
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # MIME type
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
