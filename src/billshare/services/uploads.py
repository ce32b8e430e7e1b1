"""Receipt image storage on the local filesystem.

Uploads are normalised to a progressive JPEG that fits inside 1200x1600
(never enlarged) and stored as ``receipt_<id>.jpg`` under the upload
directory.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from billshare.errors import NotFound, ValidationError
from billshare.logging import get_logger


MAX_SIZE = (1200, 1600)
JPEG_QUALITY = 85
ALLOWED_MIME_PREFIX = "image/"

_FILE_ID_RE = re.compile(r"^[0-9a-fA-F-]{36}$")


@dataclass(frozen=True, slots=True)
class StoredFile:
    id: str
    file_name: str
    file_path: str
    size: int
    mime_type: str
    created_at: datetime
    modified_at: datetime
    original_name: Optional[str] = None


class ReceiptStorage:
    def __init__(self, directory: Path, max_file_size: int) -> None:
        self.directory = directory
        self.max_file_size = max_file_size
        self.directory.mkdir(parents=True, exist_ok=True)
        self._log = get_logger(__name__)

    def _path(self, file_id: str) -> Path:
        if not _FILE_ID_RE.match(file_id):
            raise NotFound("File", file_id)
        return self.directory / f"receipt_{file_id}.jpg"

    def _stat(self, file_id: str, path: Path, original_name: Optional[str] = None) -> StoredFile:
        stats = path.stat()
        return StoredFile(
            id=file_id,
            file_name=path.name,
            file_path=f"/uploads/{path.name}",
            size=stats.st_size,
            mime_type="image/jpeg",
            created_at=datetime.fromtimestamp(stats.st_ctime, tz=timezone.utc),
            modified_at=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            original_name=original_name,
        )

    def save(self, data: bytes, content_type: Optional[str], original_name: Optional[str] = None) -> StoredFile:
        if not content_type or not content_type.startswith(ALLOWED_MIME_PREFIX):
            raise ValidationError("Only image files are allowed.", details={"contentType": content_type})
        if len(data) > self.max_file_size:
            raise ValidationError(
                "The uploaded file exceeds the maximum size limit.",
                details={"size": len(data), "maxFileSize": self.max_file_size},
            )

        try:
            with Image.open(BytesIO(data)) as img:
                img = ImageOps.exif_transpose(img)
                img.thumbnail(MAX_SIZE)
                if img.mode != "RGB":
                    img = img.convert("RGB")
                file_id = str(uuid.uuid4())
                path = self._path(file_id)
                img.save(path, format="JPEG", quality=JPEG_QUALITY, progressive=True)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise ValidationError("The uploaded file is not a readable image.") from exc

        stored = self._stat(file_id, path, original_name)
        self._log.info("upload.saved", file_id=file_id, size=stored.size)
        return stored

    def info(self, file_id: str) -> StoredFile:
        path = self._path(file_id)
        if not path.exists():
            raise NotFound("File", file_id)
        return self._stat(file_id, path)

    def read(self, file_id: str) -> bytes:
        path = self._path(file_id)
        if not path.exists():
            raise NotFound("File", file_id)
        return path.read_bytes()

    def delete(self, file_id: str) -> None:
        path = self._path(file_id)
        if not path.exists():
            raise NotFound("File", file_id)
        path.unlink()
        self._log.info("upload.deleted", file_id=file_id)

    def cleanup_old_files(self, max_age_days: int, now: Optional[datetime] = None) -> int:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=max_age_days)
        deleted = 0
        for path in self.directory.iterdir():
            if not path.is_file():
                continue
            modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            if modified < cutoff:
                path.unlink(missing_ok=True)
                deleted += 1
        self._log.info("upload.cleanup", deleted=deleted, max_age_days=max_age_days)
        return deleted
