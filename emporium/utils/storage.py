from pathlib import Path
import logging
import uuid

from fastapi import UploadFile

from emporium.config import Settings
from emporium.errors import ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_EXT_BY_CONTENT_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def upload_root(settings: Settings) -> Path:
    return Path(settings.UPLOAD_DIR).resolve()


def _pick_ext(content_type: str) -> str:
    # The client filename never decides how the file is served
    return _EXT_BY_CONTENT_TYPE.get(content_type, "")


def save_upload_file(upload_file: UploadFile, settings: Settings) -> tuple[str, int]:
    """Validate and store an uploaded image under UPLOAD_DIR.

    Returns ``(stored_filename, size_in_bytes)``. The file is streamed in chunks
    and discarded as soon as it passes ``UPLOAD_MAX_BYTES``.
    """
    if not upload_file or not upload_file.filename:
        raise ValidationError("No file uploaded")
    content_type = (upload_file.content_type or "").split(";")[0].strip().lower()
    if content_type not in settings.UPLOAD_ALLOWED_TYPES:
        logger.warning("Rejected upload %s with type %s", upload_file.filename, content_type)
        raise ValidationError("Only image files are allowed!")

    dst_dir = upload_root(settings)
    _ensure_dir(dst_dir)
    filename = f"{uuid.uuid4().hex}{_pick_ext(content_type)}"
    file_path = dst_dir / filename

    size = 0
    with file_path.open("wb") as buffer:
        while True:
            chunk = upload_file.file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > settings.UPLOAD_MAX_BYTES:
                break
            buffer.write(chunk)

    if size > settings.UPLOAD_MAX_BYTES:
        file_path.unlink(missing_ok=True)
        logger.warning("Rejected upload %s: larger than %s bytes", upload_file.filename, settings.UPLOAD_MAX_BYTES)
        raise ValidationError(f"File too large. Maximum size is {settings.UPLOAD_MAX_BYTES} bytes")
    return filename, size


def public_url(filename: str, settings: Settings) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/uploads/{filename}"


def delete_upload(filename: str, settings: Settings) -> bool:
    """Delete a stored upload by filename. Only operates inside UPLOAD_DIR."""
    if not filename or "/" in filename or "\\" in filename:
        return False
    target = upload_root(settings) / filename
    if target.is_file():
        target.unlink()
        return True
    return False
