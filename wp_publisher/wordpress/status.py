"""Status reconciler — detects drift between local articles and WordPress.

Posts can be edited directly in wp-admin (published, unpublished, moved to
trash). The reconciler re-fetches each post's authoritative status, maps it
onto the local vocabulary and reports only the articles that changed. It
never writes; applying the report is the caller's job.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol

import requests
from requests.auth import HTTPBasicAuth

from wp_publisher.common.config import PublishingSettings
from wp_publisher.common.logging import setup_logging
from wp_publisher.common.models import (
    ArticleRecord,
    ArticleStatusUpdate,
    FailureReason,
    LocalStatus,
    Outcome,
    ReconcileReport,
    RemotePostStatus,
    SiteCredentials,
)
from wp_publisher.transport.http_client import ResilientTransport

logger = setup_logging(module_name="wordpress.status")


class SiteCredentialStore(Protocol):
    """Read-only lookup of site credentials by site id."""

    def get(self, site_id: str) -> Optional[SiteCredentials]:
        """Return credentials, or None for unknown or invalid ids."""


class _Verdict(str, Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    ERROR = "error"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StatusReconciler:
    """Fetches remote post status and builds reconciliation reports."""

    def __init__(
        self,
        transport: ResilientTransport,
        credentials: SiteCredentialStore | None = None,
        settings: PublishingSettings | None = None,
        now: Callable[[], str] = _now_iso,
    ) -> None:
        self.transport = transport
        self.credentials = credentials
        self.settings = settings or PublishingSettings()
        self._now = now

    def fetch_status(
        self,
        site: SiteCredentials,
        remote_post_id: int,
    ) -> Optional[RemotePostStatus]:
        return self.try_fetch_status(site, remote_post_id).value

    def try_fetch_status(
        self,
        site: SiteCredentials,
        remote_post_id: int,
    ) -> Outcome[RemotePostStatus]:
        if not site.is_complete:
            logger.error("getPostStatus: missing credentials for %r", site.url)
            return Outcome.failure(FailureReason.MISSING_CREDENTIALS)

        try:
            response = self.transport.get(
                site.api_url(f"posts/{remote_post_id}"),
                params={"context": "edit"},
                auth=HTTPBasicAuth(*site.basic_auth),
                label="getPostStatus",
            )
        except requests.RequestException as exc:
            logger.error("getPostStatus network error for post %d: %s", remote_post_id, exc)
            return Outcome.failure(FailureReason.TRANSPORT_ERROR, detail=str(exc))

        if not response.ok:
            logger.error("getPostStatus error for post %d: HTTP %d", remote_post_id, response.status_code)
            reason = (
                FailureReason.POST_NOT_FOUND
                if response.status_code == 404
                else FailureReason.HTTP_ERROR
            )
            return Outcome.failure(reason, response.status_code)

        try:
            data = response.json()
            status = RemotePostStatus(status=str(data["status"]), url=str(data.get("link") or ""))
        except (ValueError, KeyError, TypeError) as exc:
            return Outcome.failure(
                FailureReason.MALFORMED_RESPONSE, response.status_code, str(exc)
            )
        return Outcome.success(status)

    def reconcile(self, articles: Iterable[ArticleRecord]) -> ReconcileReport:
        """Compare every published article with WordPress.

        Articles are grouped by site. Within a site they are processed
        sequentially; separate sites may run in parallel when
        ``reconcile_site_workers`` is above one. One article's failure only
        bumps ``errors``.
        """
        articles = [a for a in articles if a.wp_post_id is not None]
        if not articles:
            return ReconcileReport()

        cache: dict[str, Optional[SiteCredentials]] = {}
        cache_lock = threading.Lock()

        def lookup(site_id: str) -> Optional[SiteCredentials]:
            with cache_lock:
                if site_id in cache:
                    return cache[site_id]
            creds = self.credentials.get(site_id) if self.credentials else None
            if creds is not None and creds.api_prefix != self.settings.api_prefix:
                creds = creds.model_copy(update={"api_prefix": self.settings.api_prefix})
            with cache_lock:
                cache.setdefault(site_id, creds)
                return cache[site_id]

        groups: OrderedDict[str, list[int]] = OrderedDict()
        for index, article in enumerate(articles):
            groups.setdefault(article.site_id or "", []).append(index)

        verdicts: list[tuple[_Verdict, Optional[ArticleStatusUpdate]]] = [
            (_Verdict.ERROR, None)
        ] * len(articles)

        def run_group(indexes: list[int]) -> None:
            for index in indexes:
                verdicts[index] = self._check_article(articles[index], lookup)

        workers = min(self.settings.reconcile_site_workers, len(groups))
        if workers <= 1:
            for indexes in groups.values():
                run_group(indexes)
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                list(pool.map(run_group, groups.values()))

        report = ReconcileReport()
        for verdict, update in verdicts:
            if verdict == _Verdict.UPDATED:
                report.updated.append(update)
            elif verdict == _Verdict.UNCHANGED:
                report.unchanged += 1
            else:
                report.errors += 1

        logger.info(
            "Reconciled %d articles: %d updated, %d unchanged, %d errors",
            len(articles),
            len(report.updated),
            report.unchanged,
            report.errors,
        )
        return report

    def _check_article(
        self,
        article: ArticleRecord,
        lookup: Callable[[str], Optional[SiteCredentials]],
    ) -> tuple[_Verdict, Optional[ArticleStatusUpdate]]:
        if not article.site_id:
            logger.warning("Article %s has no site", article.article_id)
            return _Verdict.ERROR, None

        site = lookup(article.site_id)
        if site is None:
            logger.warning("Article %s: site %s not found", article.article_id, article.site_id)
            return _Verdict.ERROR, None

        remote = self.fetch_status(site, article.wp_post_id)
        if remote is None:
            return _Verdict.ERROR, None

        new_status = remote.local_status
        if new_status == article.status and (article.wp_url or "") == remote.url:
            return _Verdict.UNCHANGED, None

        published_at = None
        if new_status == LocalStatus.PUBLISHED and not article.published_at:
            published_at = self._now()

        return _Verdict.UPDATED, ArticleStatusUpdate(
            article_id=article.article_id,
            status=new_status,
            wp_url=remote.url or article.wp_url or "",
            published_at=published_at,
        )
