"""Parsing of externally invoked callback URIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping
from urllib.parse import parse_qsl, urlsplit

__all__ = ["CallbackRoute", "CallbackRequest"]


class CallbackRoute(str, Enum):
    """Known callback paths and the parameters each one carries."""

    PROVIDER_COMPLETION = "/openrouter"
    AUTH_COMPLETION = "/auth"

    @property
    def requires_state(self) -> bool:
        return self is CallbackRoute.AUTH_COMPLETION

    @property
    def required_params(self) -> tuple[str, ...]:
        if self is CallbackRoute.AUTH_COMPLETION:
            return ("token", "apiKey")
        return ("code",)

    @classmethod
    def from_path(cls, path: str) -> "CallbackRoute | None":
        for route in cls:
            if route.value == path:
                return route
        return None


@dataclass(slots=True, frozen=True)
class CallbackRequest:
    """A one-shot request parsed from an external URI."""

    path: str
    params: Mapping[str, str] = field(default_factory=dict)
    scheme: str = ""

    @property
    def route(self) -> CallbackRoute | None:
        return CallbackRoute.from_path(self.path)

    def get(self, name: str) -> str | None:
        return self.params.get(name)

    @classmethod
    def from_uri(cls, uri: str) -> "CallbackRequest":
        """Parse ``uri``; a literal ``+`` in the query stays a ``+``.

        Query values such as API keys may legitimately contain ``+``, which
        form decoding would otherwise turn into a space.
        """

        parts = urlsplit(uri)
        query = parts.query.replace("+", "%2B")
        params: dict[str, str] = {}
        for key, value in parse_qsl(query, keep_blank_values=True):
            params.setdefault(key, value)
        return cls(path=parts.path or "/", params=MappingProxyType(params), scheme=parts.scheme)
