"""Tests for the WordPressClient facade."""

import base64
from unittest.mock import MagicMock

from wp_publisher.common.config import PublishingSettings, Settings
from wp_publisher.common.models import ArticleRecord, ImageInput, PublishRequest
from wp_publisher.transport.http_client import ResilientTransport
from wp_publisher.wordpress.client import WordPressClient


class TestWordPressClient:
    def test_components_share_one_transport(self, transport):
        client = WordPressClient(Settings(), transport=transport)

        assert client.media.transport is transport
        assert client.posts.transport is transport
        assert client.status.transport is transport
        assert client.site.transport is transport

    def test_builds_transport_from_settings(self):
        client = WordPressClient(Settings())
        assert isinstance(client.transport, ResilientTransport)
        client.close()

    def test_publish_article(self, transport, site, session, make_response):
        session.request.return_value = make_response(
            201, {"id": 42, "link": "https://blog.example/?p=42", "status": "draft"}
        )
        client = WordPressClient(Settings(), transport=transport)

        result = client.publish_article(site, PublishRequest(title="T", content="c"))

        assert (result.remote_post_id, result.url) == (42, "https://blog.example/?p=42")

    def test_configured_api_prefix_applied(self, transport, site, session, make_response, request_log):
        settings = Settings(publishing=PublishingSettings(api_prefix="/?rest_route=/wp/v2"))
        session.request.return_value = make_response(200, {"status": "publish", "link": ""})
        client = WordPressClient(settings, transport=transport)

        client.get_remote_status(site, 5)

        assert request_log(session)[0][1] == "https://blog.example/?rest_route=/wp/v2/posts/5"

    def test_upload_image(self, transport, site, session, make_response):
        session.request.return_value = make_response(
            201, {"id": 3, "source_url": "https://blog.example/3.jpg"}
        )
        client = WordPressClient(Settings(), transport=transport)

        media = client.upload_image(site, ImageInput(base64_payload=base64.b64encode(b"x").decode()))

        assert media.media_id == 3

    def test_reconcile_uses_credential_store(self, transport, site, session, make_response):
        store = MagicMock()
        store.get.return_value = site
        session.request.return_value = make_response(200, {"status": "private", "link": "https://blog.example/p/"})
        client = WordPressClient(Settings(), transport=transport, credentials=store)

        report = client.reconcile([ArticleRecord(article_id="1", site_id="7", wp_post_id=9)])

        store.get.assert_called_once_with("7")
        assert report.updated[0].status.value == "published"

    def test_to_html(self):
        assert WordPressClient.to_html("**hi**") == "<p><strong>hi</strong></p>"

    def test_context_manager_closes_transport(self):
        transport = MagicMock()
        with WordPressClient(Settings(), transport=transport):
            pass
        transport.close.assert_called_once()
