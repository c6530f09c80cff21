"""Operator API keys for the statistics endpoints.

Two kinds of key are configured:

* ``OTA_SERVER_AUTH_API_KEYS`` - comma separated operator keys that may read
  every organization (``X-Organization-ID`` optionally narrows them to one).
* ``OTA_SERVER_AUTH_ORGANIZATION_KEYS`` - ``organization:key`` pairs. A key
  listed for several organizations may read any of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from fastapi import Header, HTTPException, status

from apps.api.app.core.config import get_settings


@dataclass(frozen=True)
class AuthContext:
    """Organizations a request may read; ``None`` means all of them."""

    organization_ids: frozenset[str] | None

    def can_access(self, organization_id: str) -> bool:
        return self.organization_ids is None or organization_id in self.organization_ids


UNRESTRICTED = AuthContext(organization_ids=None)


@dataclass(frozen=True)
class ApiKeyRing:
    operator_keys: frozenset[str] = frozenset()
    organizations_by_key: dict[str, frozenset[str]] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.operator_keys and not self.organizations_by_key

    def authorize(self, api_key: str, organization_id: str | None) -> AuthContext | None:
        """Scope ``api_key`` to what it may read, or ``None`` when it may not."""
        if api_key in self.operator_keys:
            if organization_id:
                return AuthContext(organization_ids=frozenset({organization_id}))
            return UNRESTRICTED
        granted = self.organizations_by_key.get(api_key)
        if not granted:
            return None
        if organization_id is None:
            return AuthContext(organization_ids=granted)
        if organization_id in granted:
            return AuthContext(organization_ids=frozenset({organization_id}))
        return None


@lru_cache
def load_key_ring(*, auth_api_keys: str, auth_organization_keys: str) -> ApiKeyRing:
    operator_keys = frozenset(key.strip() for key in auth_api_keys.split(",") if key.strip())
    grants: dict[str, set[str]] = {}
    for entry in filter(None, (raw.strip() for raw in auth_organization_keys.split(","))):
        organization, sep, key = (part.strip() for part in entry.partition(":"))
        if not sep:
            raise ValueError(f"Invalid organization key entry '{entry}': expected organization:key")
        if not organization or not key:
            raise ValueError(f"Invalid organization key entry '{entry}': empty organization or key")
        grants.setdefault(key, set()).add(organization)
    return ApiKeyRing(
        operator_keys=operator_keys,
        organizations_by_key={key: frozenset(orgs) for key, orgs in grants.items()},
    )


def validate_auth_configuration(
    *,
    security_enabled: bool,
    auth_api_keys: str,
    auth_organization_keys: str,
) -> None:
    if not security_enabled:
        return
    ring = load_key_ring(
        auth_api_keys=auth_api_keys, auth_organization_keys=auth_organization_keys
    )
    if ring.empty:
        raise ValueError(
            "Invalid auth configuration: at least one API key must be configured "
            "when security is enabled"
        )


def require_auth_context(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    x_organization_id: str | None = Header(default=None, alias="X-Organization-ID"),
) -> AuthContext:
    settings = get_settings()
    if not settings.security_enabled:
        if x_organization_id:
            return AuthContext(organization_ids=frozenset({x_organization_id}))
        return UNRESTRICTED

    if not x_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing api key")

    ring = load_key_ring(
        auth_api_keys=settings.auth_api_keys,
        auth_organization_keys=settings.auth_organization_keys,
    )
    context = ring.authorize(x_api_key, x_organization_id)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="invalid api key or organization",
        )
    return context
