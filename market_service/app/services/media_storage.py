"""업로드 이미지 저장소 (로컬 디스크)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from fastapi import Depends

from ..config import AppConfig, get_config
from ..errors import ValidationError


logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".webp"}
)
MAX_IMAGE_BYTES = 5 * 1024 * 1024


class MediaStorageInterface(Protocol):
    def save(self, filename: str, data: bytes) -> str:  # pragma: no cover - Protocol
        """파일을 저장하고 공개 URL 경로를 반환한다."""
        ...


class LocalMediaStorage(MediaStorageInterface):
    """UPLOAD_DIR 아래에 임의 이름으로 저장하고 /uploads/<name> 경로를 돌려준다."""

    def __init__(self, upload_dir: str, public_prefix: str = "/uploads") -> None:
        self._upload_dir = Path(upload_dir)
        self._public_prefix = public_prefix.rstrip("/")

    def save(self, filename: str, data: bytes) -> str:
        ext = os.path.splitext(filename or "")[1].lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError("image must be one of: " + ", ".join(sorted(ALLOWED_IMAGE_EXTENSIONS)))
        if not data:
            raise ValidationError("image is empty")
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError("image is too large")

        self._upload_dir.mkdir(parents=True, exist_ok=True)
        stored_name = f"{uuid4().hex}{ext}"
        (self._upload_dir / stored_name).write_bytes(data)
        logger.info("stored upload %s (%d bytes)", stored_name, len(data))
        return f"{self._public_prefix}/{stored_name}"


def get_media_storage(config: AppConfig = Depends(get_config)) -> MediaStorageInterface:
    return LocalMediaStorage(config.media.upload_dir, config.media.public_prefix)
