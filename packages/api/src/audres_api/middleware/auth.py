# This project was developed with assistance from AI tools.
"""
JWT authentication for registrar staff and requesters.

Bearer tokens are checked against the identity provider's JWKS endpoint;
the realm role on the token becomes the caller's ``UserRole`` and decides
which ledgers the caller may see.

Set AUTH_DISABLED=true to bypass validation (tests / local dev without Keycloak).
"""

import logging
import time
from typing import Annotated

import httpx
import jwt
from audres_db.enums import UserRole
from fastapi import Depends, HTTPException, Request, status

from ..core.config import settings
from ..schemas.auth import DataScope, TokenPayload, UserContext

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JWKS cache
# ---------------------------------------------------------------------------

_jwks_data: dict | None = None
_jwks_fetched_at: float = 0


def _jwks_url() -> str:
    return f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}/protocol/openid-connect/certs"


def _get_jwks(force_refresh: bool = False) -> dict:
    """Return the cached key set, refetching when stale or forced."""
    global _jwks_data, _jwks_fetched_at  # noqa: PLW0603

    now = time.time()
    if _jwks_data is None or force_refresh or (now - _jwks_fetched_at) > settings.JWKS_CACHE_TTL:
        response = httpx.get(_jwks_url(), timeout=5)
        response.raise_for_status()
        _jwks_data = response.json()
        _jwks_fetched_at = now

    return _jwks_data


def _find_key(jwks: dict, kid: str | None) -> jwt.PyJWK | None:
    for key in jwt.PyJWKSet.from_dict(jwks).keys:
        if key.key_id == kid:
            return key
    return None


def _get_signing_key(token: str) -> jwt.PyJWK:
    """Look up the token's signing key, refreshing the cache once on a miss."""
    kid = jwt.get_unverified_header(token).get("kid")
    try:
        key = _find_key(_get_jwks(), kid)
        if key is None:
            # rotated key
            key = _find_key(_get_jwks(force_refresh=True), kid)
    except httpx.HTTPError as exc:
        logger.error("JWKS fetch failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        ) from exc

    if key is None:
        raise jwt.InvalidTokenError(f"No matching key found for kid={kid}")
    return key


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------


def _extract_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:]
    return None


def _decode_token(token: str) -> TokenPayload:
    signing_key = _get_signing_key(token)
    payload = jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        issuer=f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}",
        options={"verify_aud": False},
    )
    return TokenPayload(**payload)


def _resolve_role(token_payload: TokenPayload) -> UserRole:
    """Pick the caller's role from ``realm_access.roles``.

    Keycloak built-ins are ignored. A token carrying several known roles
    resolves to the most privileged one.
    """
    claimed = set(token_payload.realm_access.get("roles", []))
    known = [role for role in _ROLE_PRECEDENCE if role.value in claimed]

    if not known:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No recognized role assigned",
        )
    if len(known) > 1:
        logger.warning(
            "User %s has multiple roles %s, using %s",
            token_payload.sub,
            [r.value for r in known],
            known[0].value,
        )
    return known[0]


_ROLE_PRECEDENCE = (
    UserRole.ADMIN,
    UserRole.HEAD,
    UserRole.STAFF,
    UserRole.ACCOUNTING,
    UserRole.STUDENT,
    UserRole.ALUMNI,
    UserRole.FORMER,
    UserRole.TEST,
)


def build_data_scope(role: UserRole, user_id: str) -> DataScope:
    """Requesters see their own ledgers; every staff role sees the registry."""
    if role in UserRole.staff_roles():
        return DataScope(full_registry=True)
    return DataScope(own_data_only=True, user_id=user_id)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

_DISABLED_USER = UserContext(
    user_id="dev-user",
    role=UserRole.ADMIN,
    email="dev@audres.local",
    name="Dev User",
    data_scope=DataScope(full_registry=True),
)


async def get_current_user(request: Request) -> UserContext:
    """FastAPI dependency: validate the bearer token and return a UserContext.

    When AUTH_DISABLED=true, returns a dev admin user without token validation.
    """
    if settings.AUTH_DISABLED:
        return _DISABLED_USER

    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = _decode_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    role = _resolve_role(payload)
    name = payload.name or " ".join(p for p in (payload.given_name, payload.family_name) if p)

    return UserContext(
        user_id=payload.sub,
        role=role,
        email=payload.email,
        name=name or payload.preferred_username,
        data_scope=build_data_scope(role, payload.sub),
    )


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_roles(*allowed_roles: UserRole):
    """Dependency factory: restrict a route to specific roles.

    Usage:
        @router.get("/queue", dependencies=[Depends(require_roles(*REGISTRAR))])
    """

    async def _check(user: CurrentUser) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(
                "RBAC denied: user=%s role=%s attempted route requiring %s",
                user.user_id,
                user.role.value,
                [r.value for r in allowed_roles],
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check


# Role groups used by route guards
REQUESTERS = tuple(sorted(UserRole.requester_roles(), key=lambda r: r.value))
REGISTRAR = tuple(sorted(UserRole.registrar_roles(), key=lambda r: r.value))
STAFF = tuple(sorted(UserRole.staff_roles(), key=lambda r: r.value))
MANAGERS = (UserRole.ADMIN, UserRole.HEAD)
ALL_ROLES = tuple(UserRole)
