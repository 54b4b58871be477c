"""Post publisher — idempotent create-or-update of a WordPress post.

The presence of ``existing_remote_post_id`` is the only switch between
creating (``POST posts``) and updating in place (``POST posts/{id}``), so
resubmitting a request with the same id never duplicates a post.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import requests
from requests.auth import HTTPBasicAuth

from wp_publisher.common.config import PublishingSettings
from wp_publisher.common.logging import setup_logging
from wp_publisher.common.models import (
    FailureReason,
    LocalStatus,
    Outcome,
    PublishIntent,
    PublishRequest,
    RemotePostResult,
    RemoteStatus,
    SiteCredentials,
    UploadedMedia,
    map_remote_status,
)
from wp_publisher.transport.http_client import ResilientTransport

from .content import to_html
from .media import MediaUploader

logger = setup_logging(module_name="wordpress.posts")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_post_dates(value: datetime) -> dict[str, str]:
    """``date`` (wall clock of the instant) and ``date_gmt`` (UTC)."""
    local = value.replace(tzinfo=None)
    gmt = _as_utc(value).replace(tzinfo=None)
    return {
        "date": local.isoformat(timespec="seconds"),
        "date_gmt": gmt.isoformat(timespec="seconds"),
    }


def resolve_status(
    intent: PublishIntent,
    scheduled_at: datetime | None,
    now: datetime,
) -> tuple[RemoteStatus, Optional[datetime]]:
    """Map caller intent onto a WordPress status and post date.

    A scheduled instant that is not in the future becomes an immediate
    publish dated ``now``, so no post gets stuck as ``future``.
    """
    if intent == PublishIntent.DRAFT:
        return RemoteStatus.DRAFT, scheduled_at

    if scheduled_at is not None and _as_utc(scheduled_at) > _as_utc(now):
        return RemoteStatus.SCHEDULED, scheduled_at

    return RemoteStatus.PUBLISHED, now


def expected_local_status(
    intent: PublishIntent,
    scheduled_at: datetime | None,
    now: datetime,
) -> LocalStatus:
    """Local status an article should carry after a successful publish."""
    status, _ = resolve_status(intent, scheduled_at, now)
    return map_remote_status(status.value)


class PostPublisher:
    """Creates or updates posts through the resilient transport."""

    def __init__(
        self,
        transport: ResilientTransport,
        uploader: MediaUploader,
        settings: PublishingSettings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.transport = transport
        self.uploader = uploader
        self.settings = settings or PublishingSettings()
        self._clock = clock

    def publish(
        self,
        site: SiteCredentials,
        request: PublishRequest,
    ) -> Optional[RemotePostResult]:
        """Publish and return ``{remote_post_id, url}``, or None on failure."""
        return self.try_publish(site, request).value

    def try_publish(
        self,
        site: SiteCredentials,
        request: PublishRequest,
    ) -> Outcome[RemotePostResult]:
        logger.info(
            "Publishing '%s' (intent=%s, wp_post_id=%s, password_set=%s)",
            request.title,
            request.intent.value,
            request.existing_remote_post_id,
            bool(site.application_password),
        )
        if not site.is_complete:
            logger.error("Missing WordPress credentials for %r", site.url)
            return Outcome.failure(FailureReason.MISSING_CREDENTIALS)

        body = self.build_body(request)

        featured = self._resolve_featured_image(site, request.featured_image)
        if featured.ok:
            body["featured_media"] = featured.value.media_id
        elif featured.reason != FailureReason.NOT_REQUESTED:
            logger.warning(
                "Failed to upload thumbnail (%s), publishing without featured image",
                featured.describe(),
            )

        outcome = self._send(site, body, request.existing_remote_post_id)

        if (
            outcome.reason == FailureReason.POST_NOT_FOUND
            and self.settings.recreate_missing_posts
        ):
            logger.warning(
                "Post %s no longer exists on %s; creating a new one",
                request.existing_remote_post_id,
                site.base_url,
            )
            outcome = self._send(site, body, None)
            if outcome.ok:
                outcome.value.recreated = True

        if outcome.ok:
            result = outcome.value
            result.featured_media_id = body.get("featured_media")
            if featured.reason not in (None, FailureReason.NOT_REQUESTED):
                result.featured_image_failure = featured.reason
            logger.info("Success! Post ID: %d Link: %s", result.remote_post_id, result.url)
        return outcome

    def build_body(self, request: PublishRequest) -> dict[str, Any]:
        """Assemble the JSON body (without the featured image)."""
        status, post_date = resolve_status(
            request.intent, request.scheduled_at, self._clock()
        )
        body: dict[str, Any] = {
            "title": request.title,
            "content": to_html(request.content),
            "status": status.value,
        }
        if request.excerpt is not None:
            body["excerpt"] = request.excerpt
        if post_date is not None:
            body.update(format_post_dates(post_date))
        if request.categories:
            body["categories"] = list(request.categories)
        if request.tags:
            body["tags"] = list(request.tags)
        return body

    def _resolve_featured_image(
        self,
        site: SiteCredentials,
        featured: UploadedMedia | str | None,
    ) -> Outcome[UploadedMedia]:
        if featured is None or featured == "":
            return Outcome.failure(FailureReason.NOT_REQUESTED)
        if isinstance(featured, UploadedMedia):
            return Outcome.success(featured)
        logger.info("Uploading thumbnail: %s", featured)
        return self.uploader.try_upload_from_url(site, featured)

    def _send(
        self,
        site: SiteCredentials,
        body: dict[str, Any],
        remote_post_id: int | None,
    ) -> Outcome[RemotePostResult]:
        path = f"posts/{remote_post_id}" if remote_post_id is not None else "posts"
        endpoint = site.api_url(path)
        try:
            response = self.transport.post(
                endpoint,
                json=body,
                auth=HTTPBasicAuth(*site.basic_auth),
                label="publishPost" if remote_post_id is None else "updatePost",
            )
        except requests.RequestException as exc:
            logger.error("Network error publishing to %s: %s", endpoint, exc)
            return Outcome.failure(FailureReason.TRANSPORT_ERROR, detail=str(exc))

        if response.status_code == 404 and remote_post_id is not None:
            logger.error("Post %d not found on %s", remote_post_id, site.base_url)
            return Outcome.failure(FailureReason.POST_NOT_FOUND, 404)

        if not response.ok:
            logger.error(
                "WordPress API error: HTTP %d %s",
                response.status_code,
                response.text[:500],
            )
            return Outcome.failure(FailureReason.HTTP_ERROR, response.status_code)

        try:
            data = response.json()
            result = RemotePostResult(
                remote_post_id=int(data["id"]),
                url=str(data.get("link") or ""),
                status=str(data.get("status") or body["status"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Unexpected post response from %s: %s", endpoint, exc)
            return Outcome.failure(
                FailureReason.MALFORMED_RESPONSE, response.status_code, str(exc)
            )
        return Outcome.success(result)
