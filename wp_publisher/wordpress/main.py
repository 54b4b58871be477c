"""CLI entry point for the WordPress publishing layer.

Usage:
    # Publish (or re-publish in place) a stored article:
    python -m wp_publisher.wordpress.main publish --article-id 12 --intent publish

    # Schedule it, with a featured image and inline images:
    python -m wp_publisher.wordpress.main publish --article-id 12 \
        --intent schedule --scheduled-at 2026-11-01T09:00:00+00:00 \
        --thumbnail-url https://cdn.example/cover.png \
        --image-url https://cdn.example/a.png --image-url https://cdn.example/b.png

    # Pull authoritative statuses back from WordPress:
    python -m wp_publisher.wordpress.main sync-status

    # List a site's categories:
    python -m wp_publisher.wordpress.main categories --site-id 3
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime

from wp_publisher.common.config import settings
from wp_publisher.common.database import SqliteArticleStore, SqliteSiteStore, init_db
from wp_publisher.common.models import ImageInput, PublishIntent

from .client import WordPressClient
from .workflow import ArticleDraft, ArticlePublishWorkflow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _cmd_publish(args: argparse.Namespace, client: WordPressClient) -> int:
    articles = SqliteArticleStore(args.db)
    sites = SqliteSiteStore(args.db)

    if args.intent == PublishIntent.SCHEDULE.value and not args.scheduled_at:
        logger.error("--scheduled-at is required when --intent is schedule")
        return 2

    article = articles.get(args.article_id)
    if article is None:
        logger.error("Article not found: %s", args.article_id)
        return 1
    site = sites.get(article.site_id or "")
    if site is None:
        logger.error("Site not found for article %s: %s", article.article_id, article.site_id)
        return 1

    draft = ArticleDraft(
        title=article.title,
        content=article.content,
        excerpt=article.excerpt,
        intent=PublishIntent(args.intent),
        scheduled_at=datetime.fromisoformat(args.scheduled_at) if args.scheduled_at else None,
        existing_remote_post_id=article.wp_post_id,
        thumbnail=ImageInput(remote_url=args.thumbnail_url) if args.thumbnail_url else None,
        images=[ImageInput(remote_url=url) for url in args.image_url],
        categories=args.category,
    )
    report = ArticlePublishWorkflow(client).run(site, draft)
    fields = report.article_fields()
    articles.apply_publish_report(article.article_id, fields)

    print(json.dumps(
        {key: fields.get(key) for key in ("status", "wpPostId", "wpUrl", "wpPublishError")},
        ensure_ascii=False,
        indent=2,
    ))
    return 0 if report.published else 1


def _cmd_sync_status(args: argparse.Namespace, client: WordPressClient) -> int:
    articles = SqliteArticleStore(args.db)
    client.status.credentials = SqliteSiteStore(args.db)

    report = client.reconcile(articles.list_published())
    articles.apply_status_updates(report.updated)

    print(report.model_dump_json(indent=2))
    return 0


def _cmd_categories(args: argparse.Namespace, client: WordPressClient) -> int:
    site = SqliteSiteStore(args.db).get(args.site_id)
    if site is None:
        logger.error("Site not found: %s", args.site_id)
        return 1

    categories = client.fetch_categories(site)
    if categories is None:
        logger.error("Failed to fetch categories from WordPress")
        return 1

    print(json.dumps([c.model_dump() for c in categories], ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="WordPress publishing layer")
    parser.add_argument("--db", default=settings.database.db_path, help="SQLite database path")
    sub = parser.add_subparsers(dest="command", required=True)

    publish = sub.add_parser("publish", help="Publish or update a stored article")
    publish.add_argument("--article-id", required=True)
    publish.add_argument(
        "--intent",
        choices=[intent.value for intent in PublishIntent],
        default=PublishIntent.DRAFT.value,
    )
    publish.add_argument("--scheduled-at", help="ISO 8601 instant (required for schedule)")
    publish.add_argument("--thumbnail-url")
    publish.add_argument("--image-url", action="append", default=[])
    publish.add_argument("--category", action="append", type=int, default=[])

    sub.add_parser("sync-status", help="Reconcile article statuses with WordPress")

    categories = sub.add_parser("categories", help="List a site's categories")
    categories.add_argument("--site-id", required=True)

    return parser


_COMMANDS = {
    "publish": _cmd_publish,
    "sync-status": _cmd_sync_status,
    "categories": _cmd_categories,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    init_db(args.db)
    with WordPressClient(settings) as client:
        return _COMMANDS[args.command](args, client)


if __name__ == "__main__":
    sys.exit(main())
