"""Media uploader — pushes images into the WordPress media library.

Remote images are downloaded anonymously and re-uploaded as raw bytes;
base64 payloads (optionally data URIs) are decoded locally. Every failure
is reported as an ``Outcome`` failure, never raised.
"""

from __future__ import annotations

import base64
import binascii
import re
import time
from typing import Callable, Optional

import requests
from requests.auth import HTTPBasicAuth

from wp_publisher.common.logging import setup_logging
from wp_publisher.common.models import (
    FailureReason,
    ImageInput,
    Outcome,
    SiteCredentials,
    UploadedMedia,
)
from wp_publisher.transport.http_client import ResilientTransport

logger = setup_logging(module_name="wordpress.media")

_DATA_URI = re.compile(r"^data:(image/\w+);base64,")


def extension_for(content_type: str, allow_webp: bool = False) -> str:
    """File extension for an image MIME type (png, webp or jpg)."""
    content_type = content_type.lower()
    if "png" in content_type:
        return "png"
    if allow_webp and "webp" in content_type:
        return "webp"
    return "jpg"


def decode_base64_image(payload: str) -> tuple[bytes, str]:
    """Decode a base64 image, honouring an optional data URI prefix.

    Returns:
        (raw bytes, content type). Content type defaults to image/jpeg.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    content_type = "image/jpeg"
    match = _DATA_URI.match(payload)
    if match:
        content_type = match.group(1)
        payload = payload[match.end():]
    try:
        data = base64.b64decode("".join(payload.split()), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 image payload: {exc}") from exc
    if not data:
        raise ValueError("empty image payload")
    return data, content_type


class MediaUploader:
    """Uploads images to ``/media`` and optionally annotates alt text."""

    def __init__(
        self,
        transport: ResilientTransport,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self.transport = transport
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    # --- Public contract ---

    def upload(self, site: SiteCredentials, image: ImageInput) -> Optional[UploadedMedia]:
        return self.try_upload(site, image).value

    def upload_from_url(
        self,
        site: SiteCredentials,
        url: str,
        alt_text: str | None = None,
    ) -> Optional[UploadedMedia]:
        return self.try_upload_from_url(site, url, alt_text).value

    def upload_from_base64(
        self,
        site: SiteCredentials,
        payload: str,
        filename: str | None = None,
        alt_text: str | None = None,
    ) -> Optional[UploadedMedia]:
        return self.try_upload_from_base64(site, payload, filename, alt_text).value

    # --- Outcome variants ---

    def try_upload(self, site: SiteCredentials, image: ImageInput) -> Outcome[UploadedMedia]:
        """Dispatch on the image source; base64 wins when both are set."""
        if image.base64_payload:
            return self.try_upload_from_base64(
                site, image.base64_payload, image.filename, image.alt_text
            )
        return self.try_upload_from_url(site, image.remote_url or "", image.alt_text)

    def try_upload_from_url(
        self,
        site: SiteCredentials,
        url: str,
        alt_text: str | None = None,
    ) -> Outcome[UploadedMedia]:
        if not site.is_complete:
            return Outcome.failure(FailureReason.MISSING_CREDENTIALS)
        if not url:
            return Outcome.failure(FailureReason.INVALID_PAYLOAD, detail="empty image url")

        try:
            download = self.transport.get(
                url,
                timeout=self.transport.config.media_timeout,
                label="downloadImage",
            )
        except requests.RequestException as exc:
            logger.error("Image download failed: %s (%s)", url, exc)
            return Outcome.failure(FailureReason.TRANSPORT_ERROR, detail=str(exc))

        if not download.ok:
            logger.error("Failed to download image from %s: HTTP %d", url, download.status_code)
            return Outcome.failure(FailureReason.DOWNLOAD_FAILED, download.status_code)

        content_type = download.headers.get("Content-Type") or "image/jpeg"
        filename = f"image-{self._clock_ms()}.{extension_for(content_type)}"
        return self._push(site, download.content, content_type, filename, alt_text)

    def try_upload_from_base64(
        self,
        site: SiteCredentials,
        payload: str,
        filename: str | None = None,
        alt_text: str | None = None,
    ) -> Outcome[UploadedMedia]:
        if not site.is_complete:
            return Outcome.failure(FailureReason.MISSING_CREDENTIALS)

        try:
            data, content_type = decode_base64_image(payload)
        except ValueError as exc:
            logger.error("Rejected base64 image: %s", exc)
            return Outcome.failure(FailureReason.INVALID_PAYLOAD, detail=str(exc))

        filename = filename or (
            f"image-{self._clock_ms()}.{extension_for(content_type, allow_webp=True)}"
        )
        return self._push(site, data, content_type, filename, alt_text)

    # --- Internal ---

    def _push(
        self,
        site: SiteCredentials,
        data: bytes,
        content_type: str,
        filename: str,
        alt_text: str | None,
    ) -> Outcome[UploadedMedia]:
        """POST raw bytes to the media endpoint."""
        endpoint = site.api_url("media")
        try:
            response = self.transport.post(
                endpoint,
                data=data,
                headers={
                    "Content-Type": content_type,
                    "Content-Disposition": f'attachment; filename="{filename}"',
                },
                auth=HTTPBasicAuth(*site.basic_auth),
                timeout=self.transport.config.media_timeout,
                label="uploadMedia",
            )
        except requests.RequestException as exc:
            logger.error("Media upload to %s failed: %s", endpoint, exc)
            return Outcome.failure(FailureReason.TRANSPORT_ERROR, detail=str(exc))

        if not response.ok:
            logger.error(
                "Failed to upload image: HTTP %d %s",
                response.status_code,
                response.text[:200],
            )
            return Outcome.failure(FailureReason.UPLOAD_FAILED, response.status_code)

        try:
            body = response.json()
            media = UploadedMedia(
                media_id=int(body["id"]),
                source_url=str(body["source_url"]),
                alt_text=alt_text,
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Unexpected media response from %s: %s", endpoint, exc)
            return Outcome.failure(
                FailureReason.MALFORMED_RESPONSE, response.status_code, str(exc)
            )

        if alt_text:
            self._set_alt_text(site, media.media_id, alt_text)

        logger.info("Image uploaded, ID: %d URL: %s", media.media_id, media.source_url)
        return Outcome.success(media)

    def _set_alt_text(self, site: SiteCredentials, media_id: int, alt_text: str) -> None:
        """Best effort: a failure here never fails the upload."""
        try:
            response = self.transport.post(
                site.api_url(f"media/{media_id}"),
                json={"alt_text": alt_text},
                auth=HTTPBasicAuth(*site.basic_auth),
                label="setAltText",
            )
        except requests.RequestException as exc:
            logger.warning("Could not set alt text on media %d: %s", media_id, exc)
            return
        if not response.ok:
            logger.warning(
                "Could not set alt text on media %d: HTTP %d", media_id, response.status_code
            )
