"""Tests for the wp-publisher command line."""

import json
from unittest.mock import patch

import pytest

from wp_publisher.common.config import Settings
from wp_publisher.common.database import SqliteArticleStore, SqliteSiteStore
from wp_publisher.common.models import LocalStatus
from wp_publisher.wordpress import main as cli
from wp_publisher.wordpress.client import WordPressClient


def _printed_json(out: str):
    """JSON document printed by a command, ignoring any log lines before it."""
    lines = out.splitlines()
    start = next(i for i, line in enumerate(lines) if line in ("{", "["))
    return json.loads("\n".join(lines[start:]))


@pytest.fixture
def patched_client(transport):
    """Route the CLI's client through the fake session."""
    with patch.object(
        cli, "WordPressClient", side_effect=lambda s: WordPressClient(Settings(), transport=transport)
    ) as factory:
        yield factory


@pytest.fixture
def stored(temp_db):
    site_id = SqliteSiteStore(temp_db).add("blog.example", "a", "b")
    articles = SqliteArticleStore(temp_db)
    article_id = articles.add("Hello", "# Hello\n\nFirst words.", site_id=site_id)
    return site_id, article_id, articles


class TestPublishCommand:
    def test_publish_persists_remote_handle(self, temp_db, stored, patched_client, session, make_response, capsys):
        _, article_id, articles = stored
        session.request.return_value = make_response(
            201, {"id": 42, "link": "https://blog.example/hello/", "status": "publish"}
        )

        code = cli.main(["--db", temp_db, "publish", "--article-id", article_id, "--intent", "publish"])

        assert code == 0
        article = articles.get(article_id)
        assert article.wp_post_id == 42
        assert article.wp_url == "https://blog.example/hello/"
        assert article.status == LocalStatus.PUBLISHED
        assert article.excerpt == "First words."
        printed = _printed_json(capsys.readouterr().out)
        assert printed["wpPostId"] == 42

    def test_republish_updates_same_post(self, temp_db, stored, patched_client, session, make_response, request_log):
        _, article_id, articles = stored
        session.request.side_effect = lambda *a, **kw: make_response(
            201, {"id": 42, "link": "https://blog.example/hello/", "status": "draft"}
        )

        cli.main(["--db", temp_db, "publish", "--article-id", article_id])
        cli.main(["--db", temp_db, "publish", "--article-id", article_id])

        urls = [url for _, url, _ in request_log(session, "POST")]
        assert urls == [
            "https://blog.example/wp-json/wp/v2/posts",
            "https://blog.example/wp-json/wp/v2/posts/42",
        ]

    def test_failed_publish_keeps_article(self, temp_db, stored, patched_client, session, make_response):
        _, article_id, articles = stored
        session.request.side_effect = lambda *a, **kw: make_response(500, {"code": "down"})

        code = cli.main(["--db", temp_db, "publish", "--article-id", article_id, "--intent", "publish"])

        assert code == 1
        fields = articles.get_fields(article_id)
        assert fields["status"] == "draft"
        assert fields["wp_post_id"] is None
        assert "HTTP 500" in fields["wp_publish_error"]

    def test_schedule_requires_date(self, temp_db, stored, patched_client, session):
        _, article_id, _ = stored

        code = cli.main(["--db", temp_db, "publish", "--article-id", article_id, "--intent", "schedule"])

        assert code == 2
        session.request.assert_not_called()

    def test_unknown_article(self, temp_db, patched_client, session):
        assert cli.main(["--db", temp_db, "publish", "--article-id", "404"]) == 1
        session.request.assert_not_called()


class TestSyncStatusCommand:
    def test_applies_drift(self, temp_db, stored, patched_client, session, make_response, capsys):
        site_id, _, articles = stored
        trashed = articles.add(
            "Gone", "x", site_id=site_id, status=LocalStatus.PUBLISHED,
            wp_post_id=7, wp_url="https://blog.example/gone/",
        )
        session.request.return_value = make_response(
            200, {"id": 7, "status": "trash", "link": "https://blog.example/gone/"}
        )

        code = cli.main(["--db", temp_db, "sync-status"])

        assert code == 0
        assert articles.get(trashed).status == LocalStatus.DRAFT
        report = _printed_json(capsys.readouterr().out)
        assert report["unchanged"] == 0
        assert report["errors"] == 0
        assert report["updated"][0]["article_id"] == trashed


class TestCategoriesCommand:
    def test_lists_categories(self, temp_db, stored, patched_client, session, make_response, capsys):
        site_id, _, _ = stored
        session.request.return_value = make_response(
            200, [{"id": 1, "name": "News", "slug": "news"}], headers={"X-WP-TotalPages": "1"}
        )

        code = cli.main(["--db", temp_db, "categories", "--site-id", site_id])

        assert code == 0
        assert _printed_json(capsys.readouterr().out)[0]["slug"] == "news"

    def test_unknown_site(self, temp_db, patched_client, session):
        assert cli.main(["--db", temp_db, "categories", "--site-id", "99"]) == 1
        session.request.assert_not_called()
