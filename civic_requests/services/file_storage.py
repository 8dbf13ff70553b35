from __future__ import annotations

import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from civic_requests.core.enums import AttachmentKind
from civic_requests.core.errors import ValidationError

logger = logging.getLogger(__name__)


class StoredFile(BaseModel):
    storage_ref: str
    mime_type: Optional[str] = None
    original_name: Optional[str] = None


def kind_for_mime(mime_type: Optional[str]) -> AttachmentKind:
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return AttachmentKind.image
    if mime_type.startswith("video/"):
        return AttachmentKind.video
    return AttachmentKind.document


class LocalFileStorage:
    """Writes uploads under ``upload_dir``; refs are paths served at /uploads."""

    def __init__(self, upload_dir: str, max_bytes: int):
        self.root = Path(upload_dir)
        self.max_bytes = max_bytes

    def save(self, data: bytes, mime_type: Optional[str], original_name: Optional[str]) -> StoredFile:
        if not data:
            raise ValidationError.single("file", "file is empty")
        if len(data) > self.max_bytes:
            raise ValidationError.single("file", f"file exceeds {self.max_bytes} bytes")

        ext = ""
        if original_name and "." in original_name:
            ext = "." + original_name.rsplit(".", 1)[-1].lower()[:10]
        elif mime_type:
            ext = mimetypes.guess_extension(mime_type) or ""

        self.root.mkdir(parents=True, exist_ok=True)
        safe_name = f"{uuid.uuid4().hex}{ext}"
        (self.root / safe_name).write_bytes(data)
        logger.info("upload stored", extra={"storage_ref": safe_name, "size": len(data)})

        return StoredFile(
            storage_ref=f"/uploads/{safe_name}",
            mime_type=mime_type,
            original_name=original_name,
        )

    def delete(self, storage_ref: str) -> None:
        name = storage_ref.rsplit("/", 1)[-1]
        path = self.root / name
        path.unlink(missing_ok=True)
        logger.info("upload removed", extra={"storage_ref": name})
