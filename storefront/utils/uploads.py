import logging
import os
from typing import List
from uuid import uuid4

from fastapi import HTTPException, UploadFile

from storefront.config import settings

logger = logging.getLogger(__name__)


def check_image_count(images: List[UploadFile]):
    images = [i for i in images or [] if i and i.filename]
    if not 1 <= len(images) <= settings.MAX_RETURN_IMAGES:
        raise HTTPException(
            400,
            f"Between 1 and {settings.MAX_RETURN_IMAGES} images are required",
        )
    for image in images:
        if image.content_type and not image.content_type.startswith("image/"):
            raise HTTPException(400, f"{image.filename} is not an image")
    return images


def save_images(images: List[UploadFile], folder: str) -> List[str]:
    """Write uploads under UPLOAD_DIR/<folder>; returns their public /uploads paths."""
    directory = os.path.join(settings.UPLOAD_DIR, folder)
    os.makedirs(directory, exist_ok=True)

    paths = []
    for image in images:
        ext = image.filename.rsplit(".", 1)[-1].lower() if "." in image.filename else "jpg"
        filename = f"{uuid4().hex}.{ext}"

        with open(os.path.join(directory, filename), "wb") as f:
            f.write(image.file.read())

        paths.append(f"/uploads/{folder}/{filename}")

    logger.info(f"Saved {len(paths)} image(s) to {directory}")
    return paths
