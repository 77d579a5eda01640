"""
Nature Journal — Local Image Service
======================================

What:  Reads a staged image from the device and validates it for upload.
How:   Resolves the locator (plain path or file:// URI), checks extension and
       size, reads the bytes with aiofiles and checks the real content type
       from the header bytes with python-magic.
Who:   Called by CloudinaryUploader as the first step of the upload pipeline,
       and by CaptureHandler to remove temporary captures.

Validation order (cheapest first):
    1. Extension check (no I/O)
    2. Size check from stat() (before reading the file)
    3. Read bytes, re-check actual size
    4. MIME type from magic bytes (catches renamed files)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import aiofiles
import magic

from nature_journal.config import settings
from nature_journal.exceptions import UploadFailedError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}
ALLOWED_MIME_TYPES = {"image/png", "image/jpeg"}


@dataclass(frozen=True)
class LocalImage:
    """An image read from the device, ready to be sent as a multipart file."""

    filename: str
    content: bytes
    mime_type: str


def resolve_local_path(local_uri: str) -> Path:
    """Turn a picker locator (`/tmp/a.jpg` or `file:///tmp/a.jpg`) into a Path."""
    parsed = urlparse(local_uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValidationError(
            message=f"Unsupported image location scheme '{parsed.scheme}'.",
            field="image",
            context={"scheme": parsed.scheme},
        )
    return Path(local_uri).expanduser()


class ImageService:
    """Validation and I/O for locally staged images."""

    def __init__(self, max_file_size: Optional[int] = None):
        self.max_file_size = max_file_size or settings.max_file_size

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, size: int) -> None:
        """Rejects empty images and images above `max_file_size`."""
        max_mb = self.max_file_size / (1024 * 1024)
        if size == 0:
            raise ValidationError(message="The selected image is empty.", field="image")
        if size > self.max_file_size:
            raise ValidationError(
                message=(
                    f"Image size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB."
                ),
                field="image",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def validate_mime_type(self, content: bytes, filename: str) -> str:
        """
        Returns: The MIME type detected from the file header.
        Raises:  ValidationError if the bytes are not a PNG or JPEG image,
                 whatever the extension says.
        """
        mime_type = magic.from_buffer(content[:2048], mime=True)
        if mime_type not in ALLOWED_MIME_TYPES:
            logger.warning("Rejected %s: detected MIME type %s", filename, mime_type)
            raise ValidationError(
                message=(
                    f"The selected file is not a supported image (detected '{mime_type}'). "
                    "Please choose a JPEG or PNG photo."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    async def read_image(self, local_uri: str) -> LocalImage:
        """
        Validate and load a staged image.

        Raises:
            ValidationError: unsupported type, empty or oversized file
            UploadFailedError: the file cannot be read from the device
        """
        path = resolve_local_path(local_uri)
        self.validate_extension(path.name)

        try:
            self.validate_size(path.stat().st_size)
            async with aiofiles.open(path, "rb") as f:
                content = await f.read()
        except OSError as e:
            logger.error("Failed to read staged image %s: %s", path.name, e)
            raise UploadFailedError(
                message=f"Could not read the photo: {e.strerror or e}",
                context={"filename": path.name, "os_error": str(e)},
            ) from e

        # The file may have changed between stat() and read()
        self.validate_size(len(content))

        mime_type = self.validate_mime_type(content, path.name)
        logger.debug("Read staged image %s (%d bytes, %s)", path.name, len(content), mime_type)
        return LocalImage(filename=path.name, content=content, mime_type=mime_type)

    async def cleanup_file(self, local_uri: str) -> None:
        """
        Remove a temporary image (best-effort).

        Missing files are ignored; other failures are logged and not raised,
        since a leftover capture in the staging directory does not affect
        any pipeline.
        """
        try:
            path = resolve_local_path(local_uri)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up temporary image: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to clean up temporary image %s: %s", local_uri, e)


# ── Singleton Instance ────────────────────────────────────────────────────
image_service = ImageService()
