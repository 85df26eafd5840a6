"""Image storage for uploaded product photos (local content directory)"""
import logging
import re
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

from fastapi import Request, UploadFile

from inventory.core.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
MAX_ORIGINAL_NAME_LENGTH = 100


def has_upload(upload: Optional[UploadFile]) -> bool:
    """Browsers send an empty file part when no file was picked."""
    return upload is not None and bool(upload.filename)


class ImageStorage:
    """
    Writes uploads into the content directory and builds their public URLs.

    Stored names are ``<uuid hex>-<original filename>``: the original name
    stays readable, the UUID keeps concurrent uploads from colliding.
    """

    def __init__(self, directory: str, url_path: str = "/uploads", max_bytes: int = 5 * 1024 * 1024):
        self.directory = Path(directory)
        self.url_path = "/" + url_path.strip("/")
        self.max_bytes = max_bytes

    @staticmethod
    def stored_name(original_filename: Optional[str]) -> str:
        base = Path(original_filename or "").name
        base = UNSAFE_FILENAME_CHARS.sub("_", base).strip("._") or "image"
        return f"{uuid.uuid4().hex}-{base[-MAX_ORIGINAL_NAME_LENGTH:]}"

    async def save(self, upload: UploadFile) -> str:
        """Persist an upload and return the stored filename."""
        image_bytes = await upload.read()

        if len(image_bytes) > self.max_bytes:
            raise ValidationError(f"Image too large. Max size is {self.max_bytes} bytes.")

        filename = self.stored_name(upload.filename)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(self.directory / filename, "wb") as f:
                f.write(image_bytes)
        except OSError as e:
            logger.error("Failed to write image %s: %s", filename, e)
            raise StorageError("Could not store uploaded image") from e

        logger.info("Stored image %s (%d bytes)", filename, len(image_bytes))
        return filename

    def public_url(self, request: Request, filename: str) -> str:
        """Absolute URL built from the request's scheme and host."""
        base_url = str(request.base_url).rstrip("/")
        return f"{base_url}{self.url_path}/{filename}"

    def path_for(self, image_ref: str) -> Optional[Path]:
        """Map an imageRef back to a file in the content directory, if it is one of ours."""
        if not image_ref:
            return None
        path = unquote(urlparse(image_ref).path)
        prefix = f"{self.url_path}/"
        if prefix not in path:
            return None
        filename = path.rsplit(prefix, 1)[1]
        if not filename or "/" in filename or filename in (".", ".."):
            return None
        return self.directory / filename

    def remove(self, image_ref: str) -> bool:
        """Delete the file behind an imageRef. Returns True if a file was removed."""
        target = self.path_for(image_ref)
        if target is None:
            return False
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Could not remove image %s: %s", target, e)
            return False
        logger.info("Removed image %s", target.name)
        return True
