"""Virtual read-only documents."""

from .virtual import DIFF_VIEW_URI_SCHEME, ContentProviderRegistry, VirtualDocumentProvider

__all__ = ["DIFF_VIEW_URI_SCHEME", "ContentProviderRegistry", "VirtualDocumentProvider"]
