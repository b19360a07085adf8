import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from marketplace.config import Settings
from marketplace.errors import ValidationFailed

logger = logging.getLogger(__name__)


def _check_type(image: UploadFile, settings: Settings) -> str:
    ext = Path(image.filename or "").suffix.lower().lstrip(".")
    mimetype = (image.content_type or "").lower()
    subtype = mimetype.split("/", 1)[1] if mimetype.startswith("image/") else ""
    if ext not in settings.allowed_image_types or subtype not in settings.allowed_image_types:
        raise ValidationFailed("Error: File type not supported")
    return ext


def save_image(image: Optional[UploadFile], settings: Settings) -> str:
    """Store an uploaded image under a random name and return that name."""
    if image is None or not image.filename:
        raise ValidationFailed("All fields are required")

    ext = _check_type(image, settings)
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    filename = f"{uuid.uuid4().hex}.{ext}"
    target = upload_dir / filename
    with open(target, "wb") as buffer:
        shutil.copyfileobj(image.file, buffer)

    if target.stat().st_size > settings.max_upload_bytes:
        target.unlink()
        raise ValidationFailed(f"Image exceeds {settings.max_upload_bytes} bytes")

    logger.debug("stored upload %s as %s", image.filename, filename)
    return filename


def remove_image(filename: Optional[str], settings: Settings) -> None:
    if not filename:
        return
    try:
        os.remove(Path(settings.upload_dir) / filename)
    except FileNotFoundError:
        logger.warning("image %s already missing from %s", filename, settings.upload_dir)
