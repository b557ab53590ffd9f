"""Read-only virtual documents whose text travels inside the URI.

Diff views show the original side of a change as a virtual document: the
text is base64-encoded into the query of a URI using a scheme claimed once
per process, and the provider simply decodes it back. Nothing is cached or
stored; decoding is cheap and the same URI always yields the same text.
"""

from __future__ import annotations

import base64
import logging
from typing import Dict, Protocol
from urllib.parse import quote, unquote, urlsplit

from ..errors import SchemeAlreadyRegisteredError
from ..panels.host import CallbackDisposable, Disposable
from ..services.settings import DEFAULT_DIFF_SCHEME

__all__ = [
    "DIFF_VIEW_URI_SCHEME",
    "TextDocumentContentProvider",
    "VirtualDocumentProvider",
    "ContentProviderRegistry",
    "decode_payload",
    "build_virtual_document_uri",
]

LOGGER = logging.getLogger(__name__)

DIFF_VIEW_URI_SCHEME = DEFAULT_DIFF_SCHEME


class TextDocumentContentProvider(Protocol):
    def provide_text_document_content(self, uri: str) -> str:  # pragma: no cover - protocol
        ...


_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")
_BASE64_ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/")


def decode_payload(payload: str) -> str:
    """Decode a base64 payload into UTF-8 text without ever failing.

    Both the standard and the URL-safe alphabet are accepted. Characters
    outside the alphabet are skipped, the first ``=`` ends the data, missing
    padding is tolerated and a dangling final character is dropped.
    Undecodable byte sequences are replaced, matching how editors render
    arbitrary bytes.
    """

    data = payload.translate(_URLSAFE_TO_STANDARD).split("=", 1)[0]
    compact = "".join(char for char in data if char in _BASE64_ALPHABET)
    if len(compact) % 4 == 1:
        compact = compact[:-1]
    raw = base64.b64decode(compact + "=" * (-len(compact) % 4))
    return raw.decode("utf-8", errors="replace")


def build_virtual_document_uri(scheme: str, path: str, text: str) -> str:
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"{scheme}:{quote(path)}?{quote(encoded, safe='+/=')}"


class VirtualDocumentProvider:
    """Serves the text embedded in the query component of a URI."""

    def provide_text_document_content(self, uri: str) -> str:
        query = unquote(urlsplit(uri).query)
        return decode_payload(query)


class ContentProviderRegistry:
    """Maps URI schemes to content providers; each scheme is claimed at most once."""

    def __init__(self) -> None:
        self._providers: Dict[str, TextDocumentContentProvider] = {}

    def register(self, scheme: str, provider: TextDocumentContentProvider) -> Disposable:
        if scheme in self._providers:
            raise SchemeAlreadyRegisteredError(scheme)
        self._providers[scheme] = provider
        LOGGER.debug("Registered content provider for scheme %s", scheme)
        return CallbackDisposable(lambda: self._release(scheme, provider))

    def schemes(self) -> tuple[str, ...]:
        return tuple(self._providers)

    def provide(self, uri: str) -> str:
        scheme = urlsplit(uri).scheme
        provider = self._providers.get(scheme)
        if provider is None:
            raise KeyError(f"No content provider registered for scheme '{scheme}'")
        return provider.provide_text_document_content(uri)

    def _release(self, scheme: str, provider: TextDocumentContentProvider) -> None:
        if self._providers.get(scheme) is provider:
            del self._providers[scheme]
