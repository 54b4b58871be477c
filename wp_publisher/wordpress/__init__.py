# WordPress — media upload, idempotent publishing, status reconciliation
"""
WordPress publishing layer.

Turns a generated article (markdown or HTML plus images) into a remote
WordPress post through the resilient transport, and reconciles local
article status with WordPress afterwards.
"""

from .client import WordPressClient
from .content import build_excerpt, embed_images, to_html
from .media import MediaUploader
from .posts import PostPublisher, resolve_status
from .site import SiteInspector
from .status import SiteCredentialStore, StatusReconciler
from .workflow import ArticleDraft, ArticlePublishWorkflow, PublishReport

__all__ = [
    "ArticleDraft",
    "ArticlePublishWorkflow",
    "MediaUploader",
    "PostPublisher",
    "PublishReport",
    "SiteCredentialStore",
    "SiteInspector",
    "StatusReconciler",
    "WordPressClient",
    "build_excerpt",
    "embed_images",
    "resolve_status",
    "to_html",
]
