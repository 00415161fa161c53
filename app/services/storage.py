"""
Blob storage for report screenshots

The rest of the app only talks to the BlobStorage interface: store bytes and
get a URL back, delete by URL. LocalBlobStorage keeps files on disk and the
app serves them under UPLOAD_URL_PREFIX.
"""
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from fastapi import UploadFile

from app.core.config import settings
from app.core.errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}


@dataclass
class IncomingFile:
    filename: str
    content_type: Optional[str]
    data: bytes


class BlobStorage:
    """Opaque blob store: store(file) -> url, delete(url)"""

    def store(self, file: IncomingFile) -> str:
        raise NotImplementedError

    def delete(self, url: str) -> None:
        raise NotImplementedError

    def delete_many(self, urls: List[str]) -> None:
        """Best-effort cleanup; a failed delete is logged, not raised"""
        for url in urls:
            try:
                self.delete(url)
            except OSError as e:
                logger.warning("Failed to delete blob %s: %s", url, e)


class LocalBlobStorage(BlobStorage):
    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def store(self, file: IncomingFile) -> str:
        ext = os.path.splitext(file.filename or "")[1].lower()
        name = f"{uuid.uuid4().hex}{ext}"
        (self.root / name).write_bytes(file.data)
        return f"{self.url_prefix}/{name}"

    def _path_for(self, url: str) -> Optional[Path]:
        if not url.startswith(self.url_prefix + "/"):
            return None
        name = url[len(self.url_prefix) + 1:]
        # Only plain file names inside root are ours to delete
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        return self.root / name

    def delete(self, url: str) -> None:
        path = self._path_for(url)
        if path is None:
            logger.warning("Refusing to delete blob outside upload dir: %s", url)
            return
        if path.exists():
            path.unlink()


def validate_image(file: IncomingFile) -> None:
    """Only jpeg/png/gif images up to MAX_UPLOAD_BYTES are accepted"""
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS or (file.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailed(f"Only image files are allowed: {file.filename}")
    if len(file.data) > settings.MAX_UPLOAD_BYTES:
        raise ValidationFailed(f"File {file.filename} exceeds the {settings.MAX_UPLOAD_BYTES} byte limit")


async def read_uploads(uploads: Optional[List[UploadFile]]) -> List[IncomingFile]:
    """Read and validate multipart files before any database work starts"""
    files = []
    for upload in uploads or []:
        if not upload.filename:
            continue
        data = await upload.read()
        incoming = IncomingFile(filename=upload.filename, content_type=upload.content_type, data=data)
        validate_image(incoming)
        files.append(incoming)
    if len(files) > settings.MAX_SCREENSHOTS_PER_REPORT:
        raise ValidationFailed(f"At most {settings.MAX_SCREENSHOTS_PER_REPORT} screenshots per request")
    return files


_default_storage: Optional[BlobStorage] = None


def get_storage() -> BlobStorage:
    """FastAPI dependency returning the configured blob store"""
    global _default_storage
    if _default_storage is None:
        _default_storage = LocalBlobStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return _default_storage
