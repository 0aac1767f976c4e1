# wecare/services/uploads.py
import logging
import os
import uuid
from pathlib import Path
from typing import List, Sequence

from starlette.concurrency import run_in_threadpool

from wecare.core.config import settings
from wecare.core.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"

def _safe_name(filename: str) -> str:
    base = os.path.basename(filename or "image")
    return "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in base) or "image"

def _stored_name(filename: str) -> str:
    ext = os.path.splitext(_safe_name(filename))[1].lower()
    return f"{uuid.uuid4().hex}{ext}"

def _write_new(path: Path, data: bytes) -> None:
    # "xb" fails on an existing name instead of overwriting another upload
    with open(path, "xb") as fh:
        fh.write(data)

class ImageStore:
    """Writes uploaded images under ``upload_dir`` and hands back public ``/uploads/..`` refs."""

    def __init__(self, upload_dir: str | None = None,
                 max_bytes: int | None = None,
                 max_files: int | None = None):
        self.root = Path(upload_dir or settings.upload_dir)
        self.max_bytes = max_bytes or settings.max_upload_bytes
        self.max_files = max_files or settings.max_images

    def validate(self, files: Sequence, required: bool = True) -> None:
        if required and not files:
            raise ValidationError("At least one image is required")
        if len(files) > self.max_files:
            raise ValidationError(f"At most {self.max_files} images are allowed")
        for f in files:
            if not (getattr(f, "content_type", None) or "").startswith("image/"):
                raise ValidationError("Only images are allowed")

    async def save(self, files: Sequence) -> List[str]:
        """Persist every file or none of them."""
        urls: List[str] = []
        try:
            await run_in_threadpool(self.root.mkdir, parents=True, exist_ok=True)
            for f in files:
                data = await f.read(self.max_bytes + 1)
                if len(data) > self.max_bytes:
                    raise ValidationError("Image exceeds the size limit")
                name = _stored_name(f.filename)
                await run_in_threadpool(_write_new, self.root / name, data)
                urls.append(PUBLIC_PREFIX + name)
        except OSError:
            logger.exception("writing upload failed")
            await self.discard(urls)
            raise StorageError()
        except ValidationError:
            await self.discard(urls)
            raise
        return urls

    def _unlink(self, urls: Sequence[str]) -> None:
        for url in urls:
            if not url.startswith(PUBLIC_PREFIX):
                continue
            try:
                (self.root / url[len(PUBLIC_PREFIX):]).unlink(missing_ok=True)
            except OSError:
                logger.warning("could not remove upload %s", url)

    async def discard(self, urls: Sequence[str]) -> None:
        if urls:
            await run_in_threadpool(self._unlink, list(urls))
