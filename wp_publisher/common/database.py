"""SQLite database utilities for the WordPress publisher.

Provides connection management, table initialization and small store
classes for sites and articles. The publishing layer itself never touches
the database; the CLI and request handlers use these stores to feed it and
to persist what it returns.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Collection, Iterable, Optional

from .config import settings
from .models import ArticleRecord, ArticleStatusUpdate, LocalStatus, SiteCredentials

# SQL for creating the core tables
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS sites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT '',
    url TEXT NOT NULL,
    username TEXT NOT NULL,
    application_password TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    site_id TEXT,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    excerpt TEXT,
    status TEXT NOT NULL DEFAULT 'draft',
    wp_post_id INTEGER,
    wp_url TEXT,
    wp_publish_error TEXT,
    thumbnail_url TEXT,
    image_urls TEXT NOT NULL DEFAULT '[]',
    scheduled_at TEXT,
    published_at TEXT,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_articles_wp_post ON articles(wp_post_id);
"""

_ARTICLE_COLUMNS = {
    "content": "content",
    "excerpt": "excerpt",
    "status": "status",
    "thumbnailUrl": "thumbnail_url",
    "wpPostId": "wp_post_id",
    "wpUrl": "wp_url",
    "wpPublishError": "wp_publish_error",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """Get a SQLite connection with row factory enabled."""
    path = db_path or settings.database.db_path
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_db(db_path: str | None = None) -> None:
    """Create all tables if they don't exist."""
    conn = get_connection(db_path)
    try:
        conn.executescript(_CREATE_TABLES_SQL)
        conn.commit()
    finally:
        conn.close()


class SqliteSiteStore:
    """Site credential lookup backed by the ``sites`` table."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path

    def add(self, url: str, username: str, application_password: str, name: str = "") -> str:
        conn = get_connection(self.db_path)
        try:
            cur = conn.execute(
                "INSERT INTO sites (name, url, username, application_password) VALUES (?, ?, ?, ?)",
                (name, url, username, application_password),
            )
            conn.commit()
            return str(cur.lastrowid)
        finally:
            conn.close()

    def get(self, site_id: str) -> Optional[SiteCredentials]:
        """Credentials for ``site_id``; None when unknown or not an id."""
        if not str(site_id).isdigit():
            return None
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT url, username, application_password FROM sites WHERE id = ?",
                (int(site_id),),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return SiteCredentials(
            url=row["url"],
            username=row["username"],
            application_password=row["application_password"],
        )


class SqliteArticleStore:
    """Article persistence backed by the ``articles`` table."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path

    def add(
        self,
        title: str,
        content: str,
        site_id: str | None = None,
        status: LocalStatus = LocalStatus.DRAFT,
        **extra: Any,
    ) -> str:
        row = {
            "title": title,
            "content": content,
            "site_id": site_id,
            "status": status.value,
            "updated_at": _now_iso(),
            **extra,
        }
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        conn = get_connection(self.db_path)
        try:
            cur = conn.execute(
                f"INSERT INTO articles ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )
            conn.commit()
            return str(cur.lastrowid)
        finally:
            conn.close()

    def get(self, article_id: str) -> Optional[ArticleRecord]:
        if not str(article_id).isdigit():
            return None
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT * FROM articles WHERE id = ?", (int(article_id),)
            ).fetchone()
        finally:
            conn.close()
        return self._to_record(row) if row else None

    def get_fields(self, article_id: str) -> dict[str, Any]:
        """Raw column values, for inspection and tests."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT * FROM articles WHERE id = ?", (int(article_id),)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return {}
        fields = dict(row)
        fields["image_urls"] = json.loads(fields.get("image_urls") or "[]")
        return fields

    def list_published(self) -> list[ArticleRecord]:
        """Articles that carry a WordPress post id."""
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM articles WHERE wp_post_id IS NOT NULL ORDER BY id"
            ).fetchall()
        finally:
            conn.close()
        return [self._to_record(row) for row in rows]

    def apply_publish_report(self, article_id: str, fields: dict[str, Any]) -> None:
        """Persist ``PublishReport.article_fields()`` onto an article.

        The content is stored whatever the remote outcome, so a failed
        publish can be retried without regenerating it.
        """
        updates = {
            column: fields[key] for key, column in _ARTICLE_COLUMNS.items() if key in fields
        }
        if "imageUrls" in fields:
            updates["image_urls"] = json.dumps(fields["imageUrls"])
        if fields.get("status") == LocalStatus.PUBLISHED.value and fields.get("wpPostId"):
            updates["published_at"] = _now_iso()
        self._update(article_id, updates, keep_existing={"published_at"})

    def apply_status_updates(self, updates: Iterable[ArticleStatusUpdate]) -> int:
        """Write reconciliation drift back; returns the number of rows touched."""
        count = 0
        for update in updates:
            values: dict[str, Any] = {"status": update.status.value}
            if update.wp_url:
                values["wp_url"] = update.wp_url
            if update.published_at:
                values["published_at"] = update.published_at
            self._update(update.article_id, values, keep_existing={"published_at"})
            count += 1
        return count

    def _update(
        self,
        article_id: str,
        values: dict[str, Any],
        keep_existing: Collection[str] = (),
    ) -> None:
        """Write ``values``; columns in ``keep_existing`` are only filled when empty."""
        values = {**values, "updated_at": _now_iso()}
        assignments = ", ".join(
            f"{column} = COALESCE(NULLIF({column}, ''), ?)"
            if column in keep_existing
            else f"{column} = ?"
            for column in values
        )
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                f"UPDATE articles SET {assignments} WHERE id = ?",
                (*values.values(), int(article_id)),
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _to_record(row: sqlite3.Row) -> ArticleRecord:
        return ArticleRecord(
            article_id=str(row["id"]),
            site_id=row["site_id"],
            title=row["title"],
            content=row["content"],
            excerpt=row["excerpt"],
            status=LocalStatus(row["status"]),
            wp_post_id=row["wp_post_id"],
            wp_url=row["wp_url"],
            published_at=row["published_at"],
            scheduled_at=row["scheduled_at"],
            thumbnail_url=row["thumbnail_url"],
        )
