"""Header construction for requests on both sides of the proxy."""

from starlette.datastructures import Headers


class HeaderBuilder:
    """Build outbound headers and read the caller's credential."""

    def __init__(self, user_agent: str) -> None:
        self.user_agent = user_agent

    def build_upstream_headers(self) -> dict[str, str]:
        """Only the fixed client tag goes upstream; caller headers never do."""
        return {"User-Agent": self.user_agent}


def bearer_token(headers: Headers) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    authorization = headers.get("authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token
