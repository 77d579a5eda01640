"""
Nature Journal — Media Upload Service (Cloudinary)
====================================================

What:  Transmits a staged image to the media host and returns its secure URL.
How:   Reads the image through ImageService, packages it as a multipart form
       body together with the upload preset and destination folder, and
       issues a single POST to the unsigned-upload endpoint.
Who:   Called by CaptureHandler.save() before the persistence step.

Protocol:
    POST {api_base}/{cloud_name}/image/upload
    multipart: file, upload_preset, folder
    2xx   → {"secure_url": "...", "public_id": "...", ...}
    other → {"error": {"message": "..."}}

Failure policy:
    Exactly one attempt. Network failure, non-2xx status or a malformed body
    all raise UploadFailedError carrying the underlying message. There is
    no retry, chunking or resumption, and the caller must not write a record
    after a failure.
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from nature_journal.config import Settings, settings as default_settings
from nature_journal.exceptions import UploadFailedError
from nature_journal.schemas.entry import UploadResult
from nature_journal.services.image_service import ImageService, image_service

logger = logging.getLogger(__name__)


class CloudinaryUploader:
    """
    Unsigned uploads to one Cloudinary cloud.

    Args:
        config:  Settings providing cloud name, preset, folder and API base.
        client:  Optional shared httpx.AsyncClient (tests inject one with a
                 MockTransport). When omitted, a client is opened per upload.
        images:  ImageService used to read and validate the local file.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        images: Optional[ImageService] = None,
    ):
        self.config = config or default_settings
        self.client = client
        self.images = images or image_service

    @property
    def upload_url(self) -> str:
        return self.config.cloudinary_upload_url

    def _form_fields(self) -> Dict[str, str]:
        return {
            "upload_preset": self.config.cloudinary_upload_preset,
            "folder": self.config.cloudinary_folder,
        }

    async def upload(self, local_uri: str) -> UploadResult:
        """
        Upload one staged image.

        Returns:
            UploadResult with the durable, publicly resolvable secure URL.

        Raises:
            ValidationError: the staged file is not an uploadable image
            UploadFailedError: not configured, network failure, non-2xx
                               response or malformed response body
        """
        upload_id = str(uuid.uuid4())[:8]

        if not self.config.cloudinary_cloud_name or not self.config.cloudinary_upload_preset:
            raise UploadFailedError(
                message="Media upload is not configured (cloud name or upload preset missing).",
                context={"upload_id": upload_id},
            )

        image = await self.images.read_image(local_uri)
        logger.info(
            "[%s] Uploading %s (%d bytes) to folder '%s'",
            upload_id,
            image.filename,
            len(image.content),
            self.config.cloudinary_folder,
        )

        start_time = time.perf_counter()
        files = {"file": (image.filename, image.content, image.mime_type)}
        try:
            if self.client is not None:
                response = await self.client.post(
                    self.upload_url, data=self._form_fields(), files=files,
                    headers={"Accept": "application/json"},
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self.upload_url, data=self._form_fields(), files=files,
                        headers={"Accept": "application/json"},
                    )
        except httpx.HTTPError as e:
            logger.error("[%s] Upload request failed: %s", upload_id, e)
            raise UploadFailedError(
                message=f"Upload failed: {e}",
                context={"upload_id": upload_id, "error_type": type(e).__name__},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        result = self._parse_response(response, upload_id)
        logger.info(
            "[%s] Uploaded in %.0fms: public_id=%s",
            upload_id,
            duration_ms,
            result.public_id,
        )
        return result

    def _parse_response(self, response: httpx.Response, upload_id: str) -> UploadResult:
        """Map the HTTP response onto UploadResult or UploadFailedError."""
        try:
            body: Any = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = _error_message(body) or "Upload failed"
            logger.error(
                "[%s] Media host rejected upload: HTTP %d %s",
                upload_id,
                response.status_code,
                message,
            )
            raise UploadFailedError(
                message=message,
                status_code=response.status_code,
                context={"upload_id": upload_id},
            )

        if not isinstance(body, dict):
            raise UploadFailedError(
                message="Upload failed: response body is not a JSON object",
                status_code=response.status_code,
                context={"upload_id": upload_id},
            )

        try:
            return UploadResult.model_validate(body)
        except PydanticValidationError as e:
            raise UploadFailedError(
                message="Upload failed: response did not include a secure_url",
                status_code=response.status_code,
                context={"upload_id": upload_id, "errors": e.error_count()},
            ) from e


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None
