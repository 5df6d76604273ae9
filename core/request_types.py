"""Shared request data types."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Identity:
    """Verified caller identity as reported by the identity provider."""

    subject: str
    roles: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of a single authorization check."""

    granted: bool
    subject: str | None
    roles: frozenset[str]


@dataclass(frozen=True)
class ProxyTarget:
    """Absolute URL requested through the proxy."""

    url: str
