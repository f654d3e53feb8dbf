from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile, HTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)

_safe_module = re.compile(r"^[a-zA-Z0-9_\-]+$")

IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def _max_bytes() -> int:
    return int(settings.MAX_UPLOAD_MB) * 1024 * 1024


def save_image(file: UploadFile, module: str) -> str:
    """
    Saves an image inside: {STORAGE_DIR}/{module}/YYYY/MM/DD/<uuid>.<ext>
    Returns the relative path (the opaque reference stored on the row),
    e.g. solicitations/2025/03/14/abc.jpg -> served at {MEDIA_URL}/<ref>
    """
    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="Invalid file")

    module = (module or "").strip().lower()
    if not _safe_module.match(module):
        raise HTTPException(status_code=400, detail="Invalid module path")

    ctype = (file.content_type or "").lower()
    if ctype not in IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Only image files are allowed (jpeg, png, gif, webp)",
        )

    now = datetime.utcnow()
    rel_dir = Path(module) / now.strftime("%Y") / now.strftime("%m") / now.strftime("%d")

    # extension follows the checked content type, never the client filename
    ext = IMAGE_TYPES[ctype]
    fname = f"{uuid4().hex}{ext}"

    disk_dir = Path(settings.STORAGE_DIR).resolve() / rel_dir
    disk_dir.mkdir(parents=True, exist_ok=True)
    disk_path = disk_dir / fname

    limit = _max_bytes()
    written = 0
    try:
        with disk_path.open("wb") as out:
            while True:
                chunk = file.file.read(1024 * 1024)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    break
                out.write(chunk)
    finally:
        file.file.close()

    if written > limit:
        disk_path.unlink(missing_ok=True)
        raise HTTPException(
            status_code=400,
            detail=f"File too large (max {settings.MAX_UPLOAD_MB} MB)",
        )

    ref = f"{rel_dir.as_posix()}/{fname}"
    logger.info("upload stored module=%s ref=%s size=%s", module, ref, written)
    return ref


def save_images(files: list[UploadFile], module: str, limit: int) -> list[str]:
    files = [f for f in (files or []) if f and f.filename]
    if len(files) > limit:
        raise HTTPException(status_code=400, detail=f"At most {limit} photos are allowed")
    refs: list[str] = []
    try:
        for f in files:
            refs.append(save_image(f, module))
    except Exception:
        # one bad file rejects the whole batch
        for ref in refs:
            delete_stored(ref)
        raise
    return refs


def delete_stored(ref: str | None) -> None:
    """Best-effort removal of a stored file (used when the owning row goes away)."""
    if not ref:
        return
    root = Path(settings.STORAGE_DIR).resolve()
    path = (root / ref).resolve()
    if root not in path.parents:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("could not remove stored file ref=%s", ref)


def public_url(ref: str | None) -> str | None:
    if not ref:
        return None
    return f"{settings.MEDIA_URL}/{ref}"
