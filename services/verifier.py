"""Token verification against a ZITADEL-style OpenID provider.

The proxy authenticates itself to the provider with a service-account key
(JWT profile, RFC 7523) and asks the provider whether a caller's token is
active (RFC 7662 introspection). Roles come from the project-role claims of
the introspection response.
"""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import jwt

from core.exceptions import InvalidCredentialError, StartupError
from core.request_types import Identity

DISCOVERY_PATH = "/.well-known/openid-configuration"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
ROLES_CLAIM = "urn:zitadel:iam:org:project:roles"
PROJECT_CLAIM_PREFIX = "urn:zitadel:iam:org:project:"

ASSERTION_LIFETIME = 3600
# Renew the client assertion this many seconds before it expires
ASSERTION_RENEW_MARGIN = 60


@dataclass(frozen=True)
class ServiceKey:
    """Service-account key as downloaded from the identity provider."""

    key_id: str
    private_key: str
    client_id: str
    app_id: str | None = None


@dataclass(frozen=True)
class ProviderMetadata:
    """Subset of the OpenID discovery document the verifier needs."""

    issuer: str
    introspection_endpoint: str


def load_service_key(path: str | Path) -> ServiceKey:
    """Read the JSON key file.

    Raises:
        StartupError: If the file is missing, unreadable or lacks fields.
    """
    key_file = Path(path).expanduser()
    try:
        data = json.loads(key_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise StartupError(f"cannot read key file {key_file}: {e}") from e

    try:
        return ServiceKey(
            key_id=data["keyId"],
            private_key=data["key"],
            client_id=data.get("clientId") or data["userId"],
            app_id=data.get("appId"),
        )
    except (KeyError, TypeError) as e:
        raise StartupError(f"key file {key_file} is missing field {e}") from e


def issuer_url(domain: str) -> str:
    """Instance domain to issuer base URL (https unless a scheme is given)."""
    domain = domain.strip().rstrip("/")
    if domain.startswith(("http://", "https://")):
        return domain
    return f"https://{domain}"


def discover(domain: str, timeout: float | None = None) -> ProviderMetadata:
    """Fetch issuer and introspection endpoint from the discovery document."""
    if not domain:
        raise StartupError("identity provider domain is not configured")

    url = issuer_url(domain) + DISCOVERY_PATH
    try:
        response = httpx.get(url, timeout=timeout)
        response.raise_for_status()
        document = response.json()
        return ProviderMetadata(
            issuer=document["issuer"],
            introspection_endpoint=document["introspection_endpoint"],
        )
    except (httpx.HTTPError, json.JSONDecodeError, KeyError, TypeError) as e:
        raise StartupError(f"discovery failed for {url}: {e}") from e


def extract_roles(claims: dict[str, Any]) -> frozenset[str]:
    """Collect role names from the general and project-scoped role claims."""
    roles: set[str] = set()
    for name, value in claims.items():
        if name == ROLES_CLAIM or (
            name.startswith(PROJECT_CLAIM_PREFIX) and name.endswith(":roles")
        ):
            if isinstance(value, dict):
                roles.update(value.keys())
    return frozenset(roles)


class IntrospectionVerifier:
    """AuthorizationVerifier backed by RFC 7662 token introspection."""

    def __init__(
        self,
        key: ServiceKey,
        metadata: ProviderMetadata,
        client: httpx.AsyncClient,
    ) -> None:
        self._key = key
        self._metadata = metadata
        self._client = client
        self._assertion: str | None = None
        self._assertion_expires = 0.0

    @classmethod
    def from_settings(
        cls,
        domain: str,
        key_path: str,
        timeout: float | None = None,
    ) -> "IntrospectionVerifier":
        """Load the key and run discovery; any failure is a StartupError."""
        if not key_path:
            raise StartupError("service key path is not configured")
        key = load_service_key(key_path)
        metadata = discover(domain, timeout=timeout)
        verifier = cls(key, metadata, httpx.AsyncClient(timeout=timeout))
        try:
            verifier._client_assertion()
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise StartupError(f"service key cannot sign assertions: {e}") from e
        return verifier

    async def verify(self, token: str) -> Identity:
        """Introspect token and return its subject and roles."""
        data = {
            "token": token,
            "client_assertion_type": CLIENT_ASSERTION_TYPE,
            "client_assertion": self._client_assertion(),
        }
        try:
            response = await self._client.post(self._metadata.introspection_endpoint, data=data)
            response.raise_for_status()
            claims = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise InvalidCredentialError(f"introspection failed: {e}") from e

        if not isinstance(claims, dict) or not claims.get("active", False):
            raise InvalidCredentialError("token is not active")

        return Identity(subject=str(claims.get("sub", "")), roles=extract_roles(claims))

    async def aclose(self) -> None:
        await self._client.aclose()

    def _client_assertion(self) -> str:
        now = time.time()
        if self._assertion and now < self._assertion_expires - ASSERTION_RENEW_MARGIN:
            return self._assertion

        issued = int(now)
        payload = {
            "iss": self._key.client_id,
            "sub": self._key.client_id,
            "aud": self._metadata.issuer,
            "iat": issued,
            "exp": issued + ASSERTION_LIFETIME,
        }
        self._assertion = jwt.encode(
            payload,
            self._key.private_key,
            algorithm="RS256",
            headers={"kid": self._key.key_id},
        )
        self._assertion_expires = issued + ASSERTION_LIFETIME
        return self._assertion
