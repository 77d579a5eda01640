"""
Nature Journal — Device Media Picker
======================================

What:  Obtains one image from the device, by live capture or gallery choice.
How:   `MediaPicker` is the contract (permission query + picker launch).
       `DeviceMediaPicker` implements it for a desktop/SBC host:
         - camera: grabs a single frame from a V4L2 device with ffmpeg into
           the staging directory
         - gallery: lists images in a directory (newest first) and lets a
           chooser callable pick one; returning None cancels
Who:   CaptureHandler.acquire().

Permission model:
    A mode is GRANTED when its source (capture device / gallery directory)
    exists and is readable by this process, DENIED otherwise.
"""

import asyncio
import logging
import os
import shutil
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from nature_journal.config import Settings, settings as default_settings
from nature_journal.exceptions import AcquisitionError
from nature_journal.schemas.media import AcquisitionMode, PermissionStatus, PickResult
from nature_journal.services.image_service import ALLOWED_EXTENSIONS

logger = logging.getLogger(__name__)

# Picks one of the offered gallery images, or None to cancel
GalleryChooser = Callable[[Sequence[Path]], Union[Optional[Path], Awaitable[Optional[Path]]]]


class MediaPicker(ABC):
    """Abstract interface to the device's camera and photo gallery."""

    @abstractmethod
    async def request_permission(self, mode: AcquisitionMode) -> PermissionStatus:
        """Answer whether the app may use the given acquisition mode."""
        ...

    @abstractmethod
    async def launch(self, mode: AcquisitionMode) -> PickResult:
        """
        Run the picker for `mode`.

        Returns:
            PickResult with `local_uri`, or `cancelled=True` if the user
            backed out (a normal outcome, not an error).

        Raises:
            AcquisitionError: the device failed to produce an image.
        """
        ...


class DeviceMediaPicker(MediaPicker):
    """
    Camera via ffmpeg, gallery via a directory listing.

    Args:
        config:   Settings with camera device, ffmpeg binary, timeouts and dirs.
        chooser:  Gallery chooser; the default picks the newest image.
    """

    def __init__(self, config: Optional[Settings] = None, chooser: Optional[GalleryChooser] = None):
        self.config = config or default_settings
        self.chooser: GalleryChooser = chooser or newest_image

    async def request_permission(self, mode: AcquisitionMode) -> PermissionStatus:
        if mode is AcquisitionMode.CAMERA:
            source = Path(self.config.camera_device)
        else:
            source = self.config.gallery_path

        granted = source.exists() and os.access(source, os.R_OK)
        if not granted:
            logger.info("Permission denied for %s (source %s not readable)", mode.value, source)
        return PermissionStatus.GRANTED if granted else PermissionStatus.DENIED

    async def launch(self, mode: AcquisitionMode) -> PickResult:
        if mode is AcquisitionMode.CAMERA:
            return await self._capture_frame()
        return await self._choose_from_gallery()

    # ── Camera ────────────────────────────────────────────────────────────

    async def _capture_frame(self) -> PickResult:
        ffmpeg_bin = self.config.ffmpeg_bin
        if shutil.which(ffmpeg_bin) is None:
            raise AcquisitionError(
                message=f"Camera capture is unavailable: '{ffmpeg_bin}' was not found.",
                context={"ffmpeg_bin": ffmpeg_bin},
            )

        staging = self.config.staging_path
        staging.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        target = staging / f"capture-{stamp}-{uuid.uuid4().hex[:8]}.jpg"

        command = [
            ffmpeg_bin,
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            "v4l2",
            "-i",
            self.config.camera_device,
            "-frames:v",
            "1",
            "-q:v",
            "3",
            "-y",
            str(target),
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise AcquisitionError(
                message=f"Camera capture is unavailable: '{ffmpeg_bin}' was not found.",
            ) from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.config.camera_timeout_sec
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            target.unlink(missing_ok=True)
            raise AcquisitionError(message="The camera did not respond in time.") from e

        if process.returncode != 0:
            target.unlink(missing_ok=True)
            detail = stderr.decode("utf-8", errors="replace").strip()
            logger.error("ffmpeg capture failed (%s): %s", process.returncode, detail)
            raise AcquisitionError(
                message="Could not capture a photo from the camera.",
                context={"returncode": process.returncode, "stderr": detail[-500:]},
            )

        if not target.exists() or target.stat().st_size == 0:
            target.unlink(missing_ok=True)
            raise AcquisitionError(message="The camera produced no image.")

        logger.info("Photo taken: %s", target.name)
        return PickResult(local_uri=str(target), temporary=True)

    # ── Gallery ───────────────────────────────────────────────────────────

    async def _choose_from_gallery(self) -> PickResult:
        try:
            candidates = list_gallery_images(self.config.gallery_path)
        except OSError as e:
            logger.error("Could not list gallery %s: %s", self.config.gallery_path, e)
            raise AcquisitionError(
                message="Could not open the photo gallery.",
                context={"os_error": str(e)},
            ) from e

        try:
            choice = self.chooser(candidates)
            if asyncio.iscoroutine(choice) or isinstance(choice, asyncio.Future):
                choice = await choice
        except Exception as e:
            # The chooser is host code; whatever it raises ends this acquisition
            logger.error("Gallery chooser failed: %s", e, exc_info=True)
            raise AcquisitionError(
                message="Could not select a photo from the gallery.",
                context={"error_type": type(e).__name__},
            ) from e

        if choice is None:
            logger.info("Gallery selection cancelled")
            return PickResult.cancelled_result()

        logger.info("Photo selected: %s", Path(choice).name)
        return PickResult(local_uri=str(choice))


def list_gallery_images(directory: Path) -> List[Path]:
    """Images (by extension) directly inside `directory`, newest first."""
    if not directory.is_dir():
        return []
    images = [
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in ALLOWED_EXTENSIONS
    ]
    return sorted(images, key=lambda p: p.stat().st_mtime, reverse=True)


def newest_image(candidates: Sequence[Path]) -> Optional[Path]:
    """Default chooser: the most recent image, or cancel on an empty gallery."""
    return candidates[0] if candidates else None
