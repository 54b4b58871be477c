"""Shared Pydantic data models for the WordPress publisher.

These models define the data contracts between the publishing layer and
the surrounding dashboard (article store, site credential store). All
modules import from here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_API_PREFIX = "/wp-json/wp/v2"

T = TypeVar("T")


# === Enums ===

class PublishIntent(str, Enum):
    """What the caller wants to happen to the post."""
    DRAFT = "draft"
    PUBLISH = "publish"
    SCHEDULE = "schedule"


class RemoteStatus(str, Enum):
    """Post status vocabulary of the WordPress REST API."""
    PUBLISHED = "publish"
    DRAFT = "draft"
    SCHEDULED = "future"
    PENDING = "pending"
    PRIVATE = "private"
    TRASHED = "trash"


class LocalStatus(str, Enum):
    """Article status vocabulary of the dashboard."""
    PUBLISHED = "published"
    SCHEDULED = "scheduled"
    DRAFT = "draft"


class FailureReason(str, Enum):
    """Why an operation produced no value."""
    NOT_REQUESTED = "not_requested"
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_PAYLOAD = "invalid_payload"
    DOWNLOAD_FAILED = "download_failed"
    UPLOAD_FAILED = "upload_failed"
    HTTP_ERROR = "http_error"
    POST_NOT_FOUND = "post_not_found"
    MALFORMED_RESPONSE = "malformed_response"
    TRANSPORT_ERROR = "transport_error"


_REMOTE_TO_LOCAL = {
    RemoteStatus.PUBLISHED: LocalStatus.PUBLISHED,
    RemoteStatus.PRIVATE: LocalStatus.PUBLISHED,
    RemoteStatus.SCHEDULED: LocalStatus.SCHEDULED,
    RemoteStatus.DRAFT: LocalStatus.DRAFT,
    RemoteStatus.PENDING: LocalStatus.DRAFT,
}


def map_remote_status(raw: str | None) -> LocalStatus:
    """Map a WordPress status string onto the local vocabulary.

    Unknown values (including ``trash``) fall back to draft.
    """
    try:
        remote = RemoteStatus(raw)
    except ValueError:
        return LocalStatus.DRAFT
    return _REMOTE_TO_LOCAL.get(remote, LocalStatus.DRAFT)


# === Result type ===

@dataclass
class Outcome(Generic[T]):
    """Value-or-failure returned by every internal operation.

    Keeps "nothing was requested" apart from "the request failed" while the
    public contract still collapses both to ``None``.
    """
    value: Optional[T] = None
    reason: Optional[FailureReason] = None
    status_code: Optional[int] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.value is not None and self.reason is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        reason: FailureReason,
        status_code: int | None = None,
        detail: str = "",
    ) -> Outcome[T]:
        return cls(reason=reason, status_code=status_code, detail=detail)

    def describe(self) -> str:
        """Short human-readable failure annotation."""
        if self.ok:
            return ""
        parts = [self.reason.value if self.reason else "unknown"]
        if self.status_code is not None:
            parts.append(f"HTTP {self.status_code}")
        if self.detail:
            parts.append(self.detail)
        return ": ".join(parts)


# === Site credentials ===

class SiteCredentials(BaseModel):
    """Borrowed credentials for one WordPress site."""
    model_config = ConfigDict(frozen=True)

    url: str = ""
    username: str = ""
    application_password: str = Field(default="", repr=False)
    api_prefix: str = DEFAULT_API_PREFIX

    @property
    def is_complete(self) -> bool:
        return bool(
            self.url.strip()
            and self.username.strip()
            and self.application_password.strip()
        )

    @property
    def base_url(self) -> str:
        """Site URL with a scheme and without a trailing slash."""
        url = self.url.strip()
        if not url.startswith("http"):
            url = f"https://{url}"
        return url.rstrip("/")

    @property
    def basic_auth(self) -> tuple[str, str]:
        return (self.username, self.application_password)

    def api_url(self, path: str = "") -> str:
        """Absolute REST endpoint, e.g. ``api_url("posts/42")``."""
        root = f"{self.base_url}{self.api_prefix}"
        path = path.strip("/")
        return f"{root}/{path}" if path else root


# === Images ===

class ImageInput(BaseModel):
    """An image to upload: a remote URL or a base64 payload."""
    remote_url: Optional[str] = None
    base64_payload: Optional[str] = Field(default=None, repr=False)
    filename: Optional[str] = None
    alt_text: Optional[str] = None

    @model_validator(mode="after")
    def _require_source(self) -> ImageInput:
        if not self.remote_url and not self.base64_payload:
            raise ValueError("ImageInput needs remote_url or base64_payload")
        return self


class UploadedMedia(BaseModel):
    """Handle to an attachment in the WordPress media library."""
    media_id: int
    source_url: str
    alt_text: Optional[str] = None


# === Publishing ===

class PublishRequest(BaseModel):
    """Everything the Post Publisher needs to create or update one post."""
    title: str
    content: str
    excerpt: Optional[str] = None
    intent: PublishIntent = PublishIntent.DRAFT
    scheduled_at: Optional[datetime] = None
    existing_remote_post_id: Optional[int] = None
    featured_image: Optional[Union[UploadedMedia, str]] = None
    categories: list[int] = Field(default_factory=list)
    tags: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _schedule_needs_date(self) -> PublishRequest:
        if self.intent == PublishIntent.SCHEDULE and self.scheduled_at is None:
            raise ValueError("scheduled_at is required when intent is 'schedule'")
        return self


class RemotePostResult(BaseModel):
    """Remote post handle returned after a successful publish."""
    remote_post_id: int
    url: str
    status: str = ""
    featured_media_id: Optional[int] = None
    featured_image_failure: Optional[FailureReason] = None
    recreated: bool = False


class RemotePostStatus(BaseModel):
    """Authoritative post status fetched from WordPress."""
    status: str
    url: str = ""

    @property
    def remote_status(self) -> Optional[RemoteStatus]:
        try:
            return RemoteStatus(self.status)
        except ValueError:
            return None

    @property
    def local_status(self) -> LocalStatus:
        return map_remote_status(self.status)


class WPCategory(BaseModel):
    """A WordPress post category."""
    id: int
    name: str
    slug: str = ""
    count: int = 0
    parent: int = 0


# === Articles & reconciliation ===

class ArticleRecord(BaseModel):
    """The slice of a dashboard article this layer reads."""
    article_id: str
    site_id: Optional[str] = None
    title: str = ""
    content: str = ""
    excerpt: Optional[str] = None
    status: LocalStatus = LocalStatus.DRAFT
    wp_post_id: Optional[int] = None
    wp_url: Optional[str] = None
    published_at: Optional[str] = None
    scheduled_at: Optional[str] = None
    thumbnail_url: Optional[str] = None


class ArticleStatusUpdate(BaseModel):
    """A drift detected by reconciliation, to be written back by the caller."""
    article_id: str
    status: LocalStatus
    wp_url: str = ""
    published_at: Optional[str] = None


class ReconcileReport(BaseModel):
    """Summary of one reconciliation batch."""
    updated: list[ArticleStatusUpdate] = Field(default_factory=list)
    unchanged: int = 0
    errors: int = 0
