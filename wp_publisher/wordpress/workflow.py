"""Article publish workflow — images, content assembly and remote publish.

Orchestrates the complete flow for one article:
inline images → thumbnail → embed images → excerpt → publish

Usage:
    workflow = ArticlePublishWorkflow(WordPressClient())
    report = workflow.run(site, ArticleDraft(title="T", content="# T\\n\\nbody"))
    store.apply_publish_report(article_id, report.article_fields())
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from wp_publisher.common.logging import setup_logging
from wp_publisher.common.models import (
    ImageInput,
    LocalStatus,
    PublishIntent,
    PublishRequest,
    RemotePostResult,
    SiteCredentials,
    UploadedMedia,
    map_remote_status,
)

from .client import WordPressClient
from .content import build_excerpt, embed_images
from .posts import utcnow

logger = setup_logging(module_name="wordpress.workflow")


class ArticleDraft(BaseModel):
    """A generated article as handed over by the content pipeline."""
    title: str
    content: str
    excerpt: Optional[str] = None
    intent: PublishIntent = PublishIntent.DRAFT
    scheduled_at: Optional[datetime] = None
    existing_remote_post_id: Optional[int] = None
    thumbnail: Optional[ImageInput] = None
    images: list[ImageInput] = Field(default_factory=list)
    insert_images: bool = True
    categories: list[int] = Field(default_factory=list)
    tags: list[int] = Field(default_factory=list)


class PublishReport(BaseModel):
    """Everything the caller needs to persist after one publish attempt."""
    content: str
    excerpt: str = ""
    status: Optional[LocalStatus] = LocalStatus.DRAFT
    uploaded_images: list[UploadedMedia] = Field(default_factory=list)
    failed_images: int = 0
    thumbnail: Optional[UploadedMedia] = None
    thumbnail_url: str = ""
    result: Optional[RemotePostResult] = None
    error: Optional[str] = None

    @property
    def published(self) -> bool:
        return self.result is not None

    def article_fields(self) -> dict[str, Any]:
        """Fields to write back onto the article document."""
        fields: dict[str, Any] = {
            "content": self.content,
            "excerpt": self.excerpt,
            "thumbnailUrl": self.thumbnail_url,
            "imageUrls": [img.source_url for img in self.uploaded_images],
            "wpPublishError": self.error,
        }
        if self.status is not None:
            fields["status"] = self.status.value
        if self.result is not None:
            fields["wpPostId"] = self.result.remote_post_id
            fields["wpUrl"] = self.result.url
        return fields


class ArticlePublishWorkflow:
    """Uploads an article's media, assembles its body and publishes it."""

    def __init__(
        self,
        client: WordPressClient,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.client = client
        self._clock = clock

    def run(self, site: SiteCredentials, draft: ArticleDraft) -> PublishReport:
        """Publish one article. Never raises for remote failures.

        Inline images are uploaded one after another in the order they will
        be embedded; images that fail to upload are skipped.
        """
        uploaded: list[UploadedMedia] = []
        failed = 0
        for image in draft.images:
            media = self.client.upload_image(site, image)
            if media is None:
                failed += 1
                continue
            uploaded.append(media)
        if failed:
            logger.warning("%d of %d images failed to upload", failed, len(draft.images))

        thumbnail = self._upload_thumbnail(site, draft)
        thumbnail_url = thumbnail.source_url if thumbnail else (
            draft.thumbnail.remote_url if draft.thumbnail and draft.thumbnail.remote_url else ""
        )

        content = draft.content
        if draft.insert_images and uploaded:
            content = embed_images(
                content, uploaded, self.client.settings.publishing.default_alt_text
            )

        excerpt = draft.excerpt or build_excerpt(
            content, self.client.settings.publishing.excerpt_length
        )

        report = PublishReport(
            content=content,
            excerpt=excerpt,
            uploaded_images=uploaded,
            failed_images=failed,
            thumbnail=thumbnail,
            thumbnail_url=thumbnail_url,
        )

        request = PublishRequest(
            title=draft.title,
            content=content,
            excerpt=excerpt,
            intent=draft.intent,
            scheduled_at=draft.scheduled_at,
            existing_remote_post_id=draft.existing_remote_post_id,
            featured_image=thumbnail,
            categories=draft.categories,
            tags=draft.tags,
        )
        outcome = self.client.try_publish_article(site, request)

        if outcome.ok:
            report.result = outcome.value
            report.status = map_remote_status(outcome.value.status)
        else:
            report.error = f"WordPress publish failed ({outcome.describe()})"
            # an existing remote post keeps whatever status it had
            report.status = None if draft.existing_remote_post_id is not None else LocalStatus.DRAFT
            logger.error("Article '%s' saved locally only: %s", draft.title, report.error)
        return report

    def _upload_thumbnail(
        self,
        site: SiteCredentials,
        draft: ArticleDraft,
    ) -> Optional[UploadedMedia]:
        if draft.thumbnail is None:
            return None
        thumbnail = draft.thumbnail
        if thumbnail.base64_payload:
            millis = int(self._clock().timestamp() * 1000)
            thumbnail = thumbnail.model_copy(update={
                "filename": thumbnail.filename or f"thumbnail-{millis}.jpg",
                "alt_text": thumbnail.alt_text or draft.title,
            })
        outcome = self.client.try_upload_image(site, thumbnail)
        if not outcome.ok:
            logger.warning("Thumbnail upload failed: %s", outcome.describe())
            return None
        return outcome.value
