"""WordPressClient — the contract the rest of the dashboard relies on.

Usage:
    client = WordPressClient()
    result = client.publish_article(site, PublishRequest(title="T", content="# T"))
    if result is None:
        ...  # keep the article, annotate the failure
"""

from __future__ import annotations

from typing import Iterable, Optional

from wp_publisher.common.config import Settings, settings as default_settings
from wp_publisher.common.models import (
    ArticleRecord,
    ImageInput,
    Outcome,
    PublishRequest,
    ReconcileReport,
    RemotePostResult,
    RemotePostStatus,
    SiteCredentials,
    UploadedMedia,
    WPCategory,
)
from wp_publisher.transport.http_client import ResilientTransport

from .content import to_html as _to_html
from .media import MediaUploader
from .posts import PostPublisher
from .site import SiteInspector
from .status import SiteCredentialStore, StatusReconciler


class WordPressClient:
    """Wires transport, uploader, publisher and reconciler together."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: ResilientTransport | None = None,
        credentials: SiteCredentialStore | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.transport = transport or ResilientTransport(self.settings.transport)
        self.media = MediaUploader(self.transport)
        self.posts = PostPublisher(self.transport, self.media, self.settings.publishing)
        self.status = StatusReconciler(self.transport, credentials, self.settings.publishing)
        self.site = SiteInspector(self.transport, self.settings.publishing)

    def _site(self, site: SiteCredentials) -> SiteCredentials:
        """Apply the configured REST prefix to borrowed credentials."""
        prefix = self.settings.publishing.api_prefix
        if site.api_prefix == prefix:
            return site
        return site.model_copy(update={"api_prefix": prefix})

    def publish_article(
        self,
        site: SiteCredentials,
        request: PublishRequest,
    ) -> Optional[RemotePostResult]:
        return self.posts.publish(self._site(site), request)

    def try_publish_article(
        self,
        site: SiteCredentials,
        request: PublishRequest,
    ) -> Outcome[RemotePostResult]:
        return self.posts.try_publish(self._site(site), request)

    def upload_image(
        self,
        site: SiteCredentials,
        source: ImageInput,
    ) -> Optional[UploadedMedia]:
        return self.media.upload(self._site(site), source)

    def try_upload_image(
        self,
        site: SiteCredentials,
        source: ImageInput,
    ) -> Outcome[UploadedMedia]:
        return self.media.try_upload(self._site(site), source)

    def get_remote_status(
        self,
        site: SiteCredentials,
        remote_post_id: int,
    ) -> Optional[RemotePostStatus]:
        return self.status.fetch_status(self._site(site), remote_post_id)

    def reconcile(self, articles: Iterable[ArticleRecord]) -> ReconcileReport:
        return self.status.reconcile(articles)

    def fetch_categories(self, site: SiteCredentials) -> Optional[list[WPCategory]]:
        return self.site.fetch_categories(self._site(site))

    def fetch_site_icon(self, site: SiteCredentials) -> str:
        return self.site.fetch_site_icon(self._site(site))

    @staticmethod
    def to_html(content: str) -> str:
        return _to_html(content)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> WordPressClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
