"""
Product image storage on local disk, served by the app under /uploads.
"""

import logging
import re
import time
import uuid
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}
ALLOWED_TYPES = re.compile(r"jpeg|jpg|png|gif|webp")
PUBLIC_PREFIX = "/uploads/"


def format_size(num_bytes: int) -> str:
    for unit, scale in (("MB", 1024 * 1024), ("KB", 1024)):
        if num_bytes >= scale:
            value = num_bytes / scale
            return f"{value:g}{unit}" if value == int(value) else f"{value:.1f}{unit}"
    return f"{num_bytes} bytes"


class ImageStore:
    def __init__(self, upload_dir: str, max_bytes: int):
        self.root = Path(upload_dir)
        self.products_dir = self.root / "products"
        self.max_bytes = max_bytes
        self.products_dir.mkdir(parents=True, exist_ok=True)

    def save(self, upload) -> str:
        """Validate and store an uploaded image, returning its public path."""
        extension = Path(upload.filename or "").suffix.lower()
        content_type = upload.content_type or ""
        if extension not in ALLOWED_EXTENSIONS or not ALLOWED_TYPES.search(content_type):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only image files (JPEG, JPG, PNG, GIF, WebP) are allowed!",
            )

        content = upload.file.read(self.max_bytes + 1)
        if len(content) > self.max_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File too large. Maximum size is {format_size(self.max_bytes)}.",
            )

        filename = f"{uuid.uuid4()}_{int(time.time() * 1000)}{extension}"
        (self.products_dir / filename).write_bytes(content)
        logger.info("Stored product image %s (%d bytes)", filename, len(content))
        return f"{PUBLIC_PREFIX}products/{filename}"

    def path_for(self, public_url: Optional[str]) -> Optional[Path]:
        if not public_url or not public_url.startswith(PUBLIC_PREFIX):
            return None
        path = (self.root / public_url[len(PUBLIC_PREFIX):]).resolve()
        if self.root.resolve() not in path.parents:
            return None
        return path

    def delete(self, public_url: Optional[str]):
        path = self.path_for(public_url)
        if path is not None and path.exists():
            path.unlink()
            logger.info("Deleted product image %s", path.name)


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.images
