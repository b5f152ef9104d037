"""Upload storage utility.

Uploaded images are written under UPLOAD_DIR, one folder per kind:

    UPLOAD_DIR/posts/post-1717171717171-123456789.png
    UPLOAD_DIR/avatars/avatar-1717171717171-987654321.jpg

Entities store the public relative path (e.g. "/uploads/posts/post-...png"),
which maps back to the file on disk by dropping the "/uploads/" prefix.
"""

from __future__ import annotations

import logging
import os
import secrets
import time
from pathlib import Path

from fastapi import UploadFile

from .settings import MAX_UPLOAD_BYTES, UPLOAD_DIR

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"

UPLOAD_KINDS = {
    "posts": "post",
    "avatars": "avatar",
}

# Allowed image MIME types
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/gif": ".gif",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

EXTENSION_TO_MIME = {
    "png": "image/png",
    "gif": "image/gif",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


def get_upload_root() -> Path:
    """Get the upload root from the environment (falls back to settings)."""
    return Path(os.environ.get("UPLOAD_DIR") or UPLOAD_DIR)


def resolve_mime_type(content_type: str | None, filename: str | None) -> str | None:
    """
    Determine an allowed MIME type for an upload.

    Trusts the declared content type when it is allowed, otherwise tries the
    file extension. Returns None when neither yields an image type we accept.
    """
    if content_type and content_type.lower() in ALLOWED_MIME_TYPES:
        return content_type.lower()

    name = filename or ""
    ext = name.lower().rsplit(".", 1)[-1] if "." in name else ""
    return EXTENSION_TO_MIME.get(ext)


def validate_upload_size(file_size: int) -> tuple[bool, str | None]:
    """
    Validate that the file size is within limits.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file_size == 0:
        return False, "Uploaded file is empty"

    if file_size > MAX_UPLOAD_BYTES:
        max_mb = MAX_UPLOAD_BYTES / (1000 * 1000)
        actual_mb = file_size / (1000 * 1000)
        return False, f"File size ({actual_mb:.2f} MB) exceeds maximum of {max_mb} MB"

    return True, None


def _unique_filename(kind: str, extension: str) -> str:
    prefix = UPLOAD_KINDS[kind]
    suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    return f"{prefix}-{suffix}{extension}"


def save_upload(kind: str, file_content: bytes, mime_type: str) -> str:
    """
    Save an uploaded image and return its public relative path.

    Args:
        kind: Upload folder ("posts" or "avatars")
        file_content: Raw bytes of the image
        mime_type: MIME type already resolved by resolve_mime_type

    Returns:
        Relative path like "/uploads/posts/post-1717171717171-123.png"

    Raises:
        ValueError: If the kind or MIME type is not allowed, or the size is out of bounds
        OSError: If the file cannot be written
    """
    if kind not in UPLOAD_KINDS:
        raise ValueError(f"Unknown upload kind '{kind}'")

    mime_type_lower = mime_type.lower()
    if mime_type_lower not in ALLOWED_MIME_TYPES:
        raise ValueError("Images only (PNG, GIF, JPEG)")

    is_valid, error = validate_upload_size(len(file_content))
    if not is_valid:
        raise ValueError(error)

    filename = _unique_filename(kind, ALLOWED_MIME_TYPES[mime_type_lower])
    folder = get_upload_root() / kind
    folder.mkdir(parents=True, exist_ok=True)
    file_path = folder / filename

    try:
        with open(file_path, "wb") as f:
            f.write(file_content)
    except OSError as e:
        logger.error(f"Failed to save upload {file_path}: {e}")
        raise

    logger.info(f"Saved upload to {file_path}")
    return f"{PUBLIC_PREFIX}{kind}/{filename}"


def save_upload_file(upload: UploadFile | None, kind: str) -> str | None:
    """
    Validate and store a multipart image upload.

    Returns:
        Relative path of the stored file, or None when no file was sent

    Raises:
        ValueError: If the file is not an allowed image or is too large
        OSError: If the file cannot be written
    """
    if upload is None or not upload.filename:
        return None

    mime_type = resolve_mime_type(upload.content_type, upload.filename)
    if not mime_type:
        raise ValueError("Images only (PNG, GIF, JPEG)")

    return save_upload(kind, upload.file.read(), mime_type)


def resolve_upload_path(relative_path: str) -> Path | None:
    """
    Map a stored relative path back to the file on disk.

    Returns None for paths outside the upload root (including traversal attempts).
    """
    if not relative_path:
        return None

    stripped = relative_path
    if stripped.startswith(PUBLIC_PREFIX):
        stripped = stripped[len(PUBLIC_PREFIX):]
    stripped = stripped.lstrip("/")

    root = get_upload_root().resolve()
    target = (root / stripped).resolve()
    if not target.is_relative_to(root):
        return None
    return target


def delete_upload(relative_path: str | None) -> bool:
    """
    Delete an uploaded file, best-effort.

    Never raises: failures are logged and reported as False.

    Returns:
        True if the file was deleted, False otherwise
    """
    if not relative_path:
        return False

    file_path = resolve_upload_path(relative_path)
    if file_path is None:
        logger.warning(f"Refusing to delete upload outside upload root: {relative_path}")
        return False

    try:
        if file_path.exists():
            file_path.unlink()
            logger.info(f"Deleted upload {file_path}")
            return True
        logger.warning(f"Upload not found at {file_path}")
        return False
    except OSError as e:
        logger.error(f"Failed to delete upload {file_path}: {e}")
        return False
