"""Tests for the article publish workflow."""

import base64
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from wp_publisher.common.config import Settings
from wp_publisher.common.models import (
    FailureReason,
    ImageInput,
    LocalStatus,
    Outcome,
    PublishIntent,
    RemotePostResult,
    UploadedMedia,
)
from wp_publisher.wordpress.client import WordPressClient
from wp_publisher.wordpress.workflow import ArticleDraft, ArticlePublishWorkflow, PublishReport

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
ARTICLE = "# Title\n\nIntro text.\n## One\n\nFirst.\n## Two\n\nSecond."


def _media(n: int) -> UploadedMedia:
    return UploadedMedia(media_id=n, source_url=f"https://blog.example/img-{n}.png")


def _published(status="publish", post_id=42) -> Outcome:
    return Outcome.success(
        RemotePostResult(remote_post_id=post_id, url=f"https://blog.example/?p={post_id}", status=status)
    )


@pytest.fixture
def client() -> MagicMock:
    fake = MagicMock()
    fake.settings = Settings()
    fake.try_publish_article.return_value = _published()
    return fake


@pytest.fixture
def workflow(client) -> ArticlePublishWorkflow:
    return ArticlePublishWorkflow(client, clock=lambda: NOW)


class TestInlineImages:
    def test_uploaded_in_order_and_embedded(self, workflow, client, site):
        images = [ImageInput(remote_url=f"https://cdn.example/{n}.png") for n in (1, 2)]
        client.upload_image.side_effect = [_media(1), _media(2)]

        report = workflow.run(site, ArticleDraft(title="T", content=ARTICLE, images=images))

        assert [c.args[1] for c in client.upload_image.call_args_list] == images
        assert report.content.index("img-1") < report.content.index("img-2")
        assert report.content.count("![Article image]") == 2
        request = client.try_publish_article.call_args.args[1]
        assert request.content == report.content

    def test_failed_upload_skipped(self, workflow, client, site):
        images = [ImageInput(remote_url=f"https://cdn.example/{n}.png") for n in (1, 2, 3)]
        client.upload_image.side_effect = [_media(1), None, _media(3)]

        report = workflow.run(site, ArticleDraft(title="T", content=ARTICLE, images=images))

        assert report.failed_images == 1
        assert [m.media_id for m in report.uploaded_images] == [1, 3]
        assert report.content.count("![") == 2

    def test_insert_images_disabled(self, workflow, client, site):
        client.upload_image.return_value = _media(1)

        report = workflow.run(
            site,
            ArticleDraft(
                title="T",
                content=ARTICLE,
                images=[ImageInput(remote_url="https://cdn.example/1.png")],
                insert_images=False,
            ),
        )

        assert report.content == ARTICLE
        assert len(report.uploaded_images) == 1


class TestThumbnail:
    def test_url_thumbnail_becomes_featured_image(self, workflow, client, site):
        client.try_upload_image.return_value = Outcome.success(_media(9))

        report = workflow.run(
            site,
            ArticleDraft(
                title="T",
                content=ARTICLE,
                thumbnail=ImageInput(remote_url="https://cdn.example/cover.png"),
            ),
        )

        assert report.thumbnail_url == "https://blog.example/img-9.png"
        assert client.try_publish_article.call_args.args[1].featured_image == _media(9)

    def test_base64_thumbnail_named_and_titled(self, workflow, client, site):
        client.try_upload_image.return_value = Outcome.success(_media(9))
        payload = base64.b64encode(b"jpeg").decode()

        workflow.run(
            site,
            ArticleDraft(title="My Post", content=ARTICLE, thumbnail=ImageInput(base64_payload=payload)),
        )

        sent = client.try_upload_image.call_args.args[1]
        assert sent.filename == f"thumbnail-{int(NOW.timestamp() * 1000)}.jpg"
        assert sent.alt_text == "My Post"

    def test_failed_thumbnail_keeps_source_url(self, workflow, client, site):
        client.try_upload_image.return_value = Outcome.failure(FailureReason.DOWNLOAD_FAILED, 404)

        report = workflow.run(
            site,
            ArticleDraft(
                title="T",
                content=ARTICLE,
                thumbnail=ImageInput(remote_url="https://cdn.example/cover.png"),
            ),
        )

        assert report.thumbnail is None
        assert report.thumbnail_url == "https://cdn.example/cover.png"
        assert client.try_publish_article.call_args.args[1].featured_image is None
        assert report.published


class TestExcerpt:
    def test_generated_when_missing(self, workflow, client, site):
        report = workflow.run(site, ArticleDraft(title="T", content=ARTICLE))

        assert report.excerpt.startswith("Intro text.")
        assert client.try_publish_article.call_args.args[1].excerpt == report.excerpt

    def test_supplied_excerpt_kept(self, workflow, site):
        report = workflow.run(site, ArticleDraft(title="T", content=ARTICLE, excerpt="Hand written"))

        assert report.excerpt == "Hand written"


class TestOutcome:
    def test_success_status_follows_remote(self, workflow, client, site):
        client.try_publish_article.return_value = _published(status="future")

        report = workflow.run(
            site,
            ArticleDraft(
                title="T",
                content=ARTICLE,
                intent=PublishIntent.SCHEDULE,
                scheduled_at=datetime(2026, 6, 1, tzinfo=timezone.utc),
            ),
        )

        assert report.status == LocalStatus.SCHEDULED
        assert report.result.remote_post_id == 42
        assert report.error is None

    def test_failure_annotated_and_kept_as_draft(self, workflow, client, site):
        client.try_publish_article.return_value = Outcome.failure(FailureReason.HTTP_ERROR, 500)

        report = workflow.run(site, ArticleDraft(title="T", content=ARTICLE, intent=PublishIntent.PUBLISH))

        assert not report.published
        assert report.status == LocalStatus.DRAFT
        assert report.error == "WordPress publish failed (http_error: HTTP 500)"

    def test_failed_update_leaves_status_alone(self, workflow, client, site):
        client.try_publish_article.return_value = Outcome.failure(FailureReason.TRANSPORT_ERROR)

        report = workflow.run(
            site, ArticleDraft(title="T", content=ARTICLE, existing_remote_post_id=42)
        )

        assert report.status is None
        assert "status" not in report.article_fields()


class TestArticleFields:
    def test_successful_publish(self):
        report = PublishReport(
            content="body",
            excerpt="ex",
            status=LocalStatus.PUBLISHED,
            uploaded_images=[_media(1), _media(2)],
            thumbnail_url="https://blog.example/t.png",
            result=RemotePostResult(remote_post_id=42, url="https://blog.example/?p=42"),
        )

        assert report.article_fields() == {
            "content": "body",
            "excerpt": "ex",
            "status": "published",
            "thumbnailUrl": "https://blog.example/t.png",
            "imageUrls": ["https://blog.example/img-1.png", "https://blog.example/img-2.png"],
            "wpPostId": 42,
            "wpUrl": "https://blog.example/?p=42",
            "wpPublishError": None,
        }

    def test_failed_publish_has_no_remote_fields(self):
        fields = PublishReport(content="body", error="WordPress publish failed (x)").article_fields()

        assert "wpPostId" not in fields
        assert fields["wpPublishError"] == "WordPress publish failed (x)"
        assert fields["status"] == "draft"


class TestEndToEnd:
    def test_full_run_against_fake_session(self, transport, site, session, make_response, request_log):
        client = WordPressClient(Settings(), transport=transport)
        session.request.side_effect = [
            make_response(200, content=b"png", headers={"Content-Type": "image/png"}),
            make_response(201, {"id": 3, "source_url": "https://blog.example/3.png"}),
            make_response(201, {"id": 42, "link": "https://blog.example/?p=42", "status": "publish"}),
        ]

        report = ArticlePublishWorkflow(client, clock=lambda: NOW).run(
            site,
            ArticleDraft(
                title="T",
                content=ARTICLE,
                intent=PublishIntent.PUBLISH,
                images=[ImageInput(remote_url="https://cdn.example/3.png")],
            ),
        )

        assert report.status == LocalStatus.PUBLISHED
        assert report.result.remote_post_id == 42
        _, url, kwargs = request_log(session)[-1]
        assert url == "https://blog.example/wp-json/wp/v2/posts"
        html = kwargs["json"]["content"]
        assert 'src="https://blog.example/3.png"' in html
        assert 'alt="Article image"' in html
