"""
File upload helpers (avatars, prescription documents)
"""
import logging
import os
import time
import uuid
from typing import Iterable

from fastapi import HTTPException, UploadFile

from healthdash.config import settings

logger = logging.getLogger(__name__)

IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
DOCUMENT_TYPES = IMAGE_TYPES + ("application/pdf",)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}


def unique_filename(original_name: str, content_type: str = "") -> str:
    """Millisecond timestamp plus a short random suffix, keeping the extension"""
    ext = os.path.splitext(original_name or "")[1].lower()
    if not ext or len(ext) > 10:
        ext = _EXTENSIONS.get(content_type, "")
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"


async def save_upload(file: UploadFile, allowed_types: Iterable[str]) -> str:
    """
    Write an uploaded file into UPLOAD_DIR

    Returns:
        Public URL path, e.g. /uploads/1700000000000-ab12cd34.png

    Raises:
        HTTPException: 400 for a disallowed type, empty or oversized file
    """
    allowed_types = tuple(allowed_types)
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if file.content_type not in allowed_types:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{file.content_type}'"
        )

    content = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File too large")

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    filename = unique_filename(file.filename, file.content_type)
    path = os.path.join(settings.UPLOAD_DIR, filename)
    with open(path, "wb") as fh:
        fh.write(content)

    logger.info("Stored upload %s (%d bytes)", filename, len(content))
    return f"/uploads/{filename}"
