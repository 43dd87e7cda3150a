from __future__ import annotations

import logging
import re
from pathlib import Path
from uuid import uuid4

from backend.errors import StoreError, ValidationError
from backend.settings import get_settings

logger = logging.getLogger(__name__)

_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


def upload_root() -> Path:
    return Path(get_settings().upload_dir)


def upload(filename: str, content: bytes) -> str:
    """Persist ``content`` under the upload directory and return its public URL."""
    settings = get_settings()
    if not content:
        raise ValidationError("Uploaded file is empty", field="file")
    if len(content) > settings.max_upload_bytes:
        raise ValidationError("Uploaded file is too large", field="file")
    suffix = Path(str(filename or "")).suffix.lower()
    if not _SAFE_SUFFIX.match(suffix):
        suffix = ""
    stored_name = f"{uuid4().hex}{suffix}"
    root = upload_root()
    try:
        root.mkdir(parents=True, exist_ok=True)
        (root / stored_name).write_bytes(content)
    except OSError as exc:
        raise StoreError(f"Failed to store upload: {exc}") from exc
    logger.info("Stored upload %s (%s bytes)", stored_name, len(content))
    return f"{settings.public_base_url.rstrip('/')}/uploads/{stored_name}"


def resolve(name: str) -> Path | None:
    if not name or "/" in name or "\\" in name or name.startswith("."):
        return None
    path = upload_root() / name
    return path if path.is_file() else None
