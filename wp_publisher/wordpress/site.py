"""Site inspector — read-only lookups against a connected WordPress site."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote, urlsplit

import requests
from requests.auth import HTTPBasicAuth

from wp_publisher.common.config import PublishingSettings
from wp_publisher.common.models import SiteCredentials, WPCategory
from wp_publisher.transport.http_client import ResilientTransport

logger = logging.getLogger(__name__)

FAVICON_SERVICE = "https://www.google.com/s2/favicons?domain={domain}&sz=64"


def favicon_fallback(site_url: str) -> str:
    """Favicon service URL for the site's domain."""
    url = site_url if site_url.startswith("http") else f"https://{site_url}"
    domain = urlsplit(url).netloc or url
    return FAVICON_SERVICE.format(domain=quote(domain, safe=""))


class SiteInspector:
    """Fetches categories and branding for a site."""

    def __init__(
        self,
        transport: ResilientTransport,
        settings: PublishingSettings | None = None,
    ) -> None:
        self.transport = transport
        self.settings = settings or PublishingSettings()

    def fetch_categories(self, site: SiteCredentials) -> Optional[list[WPCategory]]:
        """All post categories, following ``X-WP-TotalPages``.

        Returns None when credentials are missing or any page fails.
        """
        if not site.is_complete:
            logger.error("Site credentials not configured for %r", site.url)
            return None

        categories: list[WPCategory] = []
        page = 1
        while page <= self.settings.categories_max_pages:
            try:
                response = self.transport.get(
                    site.api_url("categories"),
                    params={"per_page": self.settings.categories_per_page, "page": page},
                    auth=HTTPBasicAuth(*site.basic_auth),
                    timeout=self.settings.categories_timeout,
                    max_retries=1,
                    label=f"fetchCategories(page={page})",
                )
            except requests.RequestException as exc:
                logger.error("Category fetch failed on page %d: %s", page, exc)
                return None

            if not response.ok:
                logger.error("WordPress categories error: HTTP %d", response.status_code)
                return None

            try:
                categories.extend(WPCategory.model_validate(item) for item in response.json())
            except ValueError as exc:
                logger.error("Unexpected categories payload: %s", exc)
                return None

            try:
                total_pages = int(response.headers.get("X-WP-TotalPages") or 1)
            except ValueError:
                total_pages = 1
            if page >= total_pages:
                break
            page += 1

        return categories

    def fetch_site_icon(self, site: SiteCredentials) -> str:
        """Site icon from the REST index, or a favicon-service fallback."""
        try:
            response = self.transport.get(
                f"{site.base_url}/wp-json/",
                timeout=self.settings.site_icon_timeout,
                max_retries=1,
                label="fetchFavicon",
            )
            if response.ok:
                icon = (response.json() or {}).get("site_icon_url")
                if icon:
                    return str(icon)
        except (requests.RequestException, ValueError, AttributeError) as exc:
            logger.warning("WP-JSON icon lookup failed for %s: %s", site.base_url, exc)

        return favicon_fallback(site.url)
