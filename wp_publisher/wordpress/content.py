"""Content transformer — markdown to WordPress-ready HTML.

Handles:
- Markdown → HTML conversion (pre-rendered HTML passes through)
- Evenly spaced image embedding at section boundaries
- Excerpt derivation from article content
"""

from __future__ import annotations

import re
from typing import Sequence
from urllib.parse import quote

import markdown as md
from bs4 import BeautifulSoup

from wp_publisher.common.models import UploadedMedia

DEFAULT_ALT_TEXT = "Article image"

_HTML_START = re.compile(r"^<[a-z][\s\S]*>", re.IGNORECASE)
_SECTION_BREAK = re.compile(r"\n(?=## )")
_LEADING_HEADING = re.compile(r"^#.*\n?", re.MULTILINE)
# Left unescaped in image URLs; spaces and parentheses end a markdown image target
_URL_SAFE = ":/?#[]@!$&'*+,;=%~"


def looks_like_html(content: str) -> bool:
    return bool(_HTML_START.match(content.strip()))


def to_html(content: str) -> str:
    """Convert markdown to HTML, returning HTML input unchanged."""
    if looks_like_html(content):
        return content
    return md.markdown(content, extensions=["tables", "fenced_code"])


def image_markup(media: UploadedMedia, default_alt: str = DEFAULT_ALT_TEXT) -> str:
    """Markdown image block for an uploaded attachment."""
    alt = (media.alt_text or default_alt).replace("[", "").replace("]", "")
    return f"\n![{alt}]({quote(media.source_url, safe=_URL_SAFE)})\n"


def split_sections(content: str) -> list[str]:
    """Split content at second-level headings (``\\n## ``)."""
    return _SECTION_BREAK.split(content)


def embed_images(
    content: str,
    images: Sequence[UploadedMedia],
    default_alt: str = DEFAULT_ALT_TEXT,
) -> str:
    """Place every image exactly once, roughly evenly between sections.

    An image block follows every ``interval``-th section, where
    ``interval = max(1, sections // (images + 1))``. Images left over after
    the walk are appended at the end in order.

    Args:
        content: Markdown article body
        images: Uploaded images in placement order
        default_alt: Alt text for images without their own

    Returns:
        Content with image markup inserted
    """
    if not images:
        return content

    sections = split_sections(content)
    interval = max(1, len(sections) // (len(images) + 1))

    pending = list(images)
    output: list[str] = []
    for index, section in enumerate(sections, start=1):
        output.append(section)
        if pending and index % interval == 0:
            output.append(image_markup(pending.pop(0), default_alt))

    for media in pending:
        output.append(image_markup(media, default_alt))

    return "\n".join(output)


def build_excerpt(content: str, length: int = 160) -> str:
    """Plain-text excerpt from the article body, minus its title heading."""
    body = content if looks_like_html(content) else _LEADING_HEADING.sub("", content, count=1)
    text = BeautifulSoup(to_html(body), "lxml").get_text(" ", strip=True)
    text = re.sub(r"\s+", " ", text).strip()
    return text[:length].rstrip()
