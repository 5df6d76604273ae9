"""Custom exception hierarchy for the forward proxy."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class StartupError(ProxyError):
    """Raised when the process cannot start serving (verifier init, key file)."""


class ClientInputError(ProxyError):
    """The caller's request is missing required input."""

    status_code = 400


class InvalidCredentialError(ProxyError):
    """Raised by a verifier when a credential cannot be accepted.

    Covers malformed, expired, inactive and unverifiable tokens, including
    the case where the identity provider could not be reached.
    """


class AuthorizationDenied(ProxyError):
    """Raised by the authorization gate to short-circuit a request.

    Attributes:
        message: Denial message returned to the caller
        status_code: 401 for a bad credential, 403 for a missing role
        detail: Verifier-side reason, logged but never returned
    """

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail


class UpstreamError(ProxyError):
    """Raised when the outbound request fails; maps to a 500 envelope."""

    status_code = 500


class UpstreamConstructionError(UpstreamError):
    """Raised when the outbound request cannot be built (malformed URL)."""


class UpstreamTransportError(UpstreamError):
    """Raised when the outbound request fails at the transport level."""


class StreamingError(UpstreamError):
    """Raised when relaying the upstream body fails after bytes were sent."""
