import logging
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from keycloak import KeycloakOpenID

from assessment_platform.core.config import settings
from assessment_platform.models.organization import User

logger = logging.getLogger(__name__)

security = HTTPBearer()


@lru_cache()
def get_keycloak_openid() -> KeycloakOpenID:
    """Get Keycloak OpenID client instance."""
    return KeycloakOpenID(
        server_url=settings.KEYCLOAK_URL,
        client_id=settings.KEYCLOAK_CLIENT_ID,
        realm_name=settings.KEYCLOAK_REALM,
        client_secret_key=settings.KEYCLOAK_CLIENT_SECRET,
    )


@lru_cache()
def get_realm_public_key() -> str:
    public_key = get_keycloak_openid().public_key()
    if not public_key.startswith("-----BEGIN"):
        public_key = f"-----BEGIN PUBLIC KEY-----\n{public_key}\n-----END PUBLIC KEY-----"
    return public_key


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_from_claims(payload: Dict[str, Any]) -> User:
    """
    Build the acting principal from verified token claims.

    Roles are the union of realm roles and this client's roles. Only system
    administrators may act without an organization claim.
    """
    issuer = payload.get("iss", "")
    if not issuer.endswith(f"/realms/{settings.KEYCLOAK_REALM}"):
        logger.error(f"[AUTH] Invalid issuer: {issuer}, expected realm: {settings.KEYCLOAK_REALM}")
        raise _unauthorized("Token from invalid realm")

    realm_roles: List[str] = payload.get("realm_access", {}).get("roles", [])
    client_roles: List[str] = (
        payload.get("resource_access", {})
        .get(settings.KEYCLOAK_CLIENT_ID, {})
        .get("roles", [])
    )

    user = User(
        id=payload.get("sub"),
        email=payload.get("email"),
        name=payload.get("name") or payload.get("preferred_username"),
        roles=sorted(set(realm_roles + client_roles)),
        permissions=payload.get("permissions", []),
        organization_id=payload.get("organization_id"),
        organization_name=payload.get("organization_name"),
    )

    if not user.organization_id and not user.is_system_admin():
        logger.warning(f"[AUTH] User {user.id} missing organization_id in token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User must belong to an organization",
        )
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    """Validate the bearer token against the realm public key and return the principal."""
    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            get_realm_public_key(),
            algorithms=["RS256"],
            options={"verify_aud": False},
        )
    except JWTError as e:
        logger.warning(f"[AUTH] Token validation failed: {str(e)}")
        raise _unauthorized(f"Could not validate credentials: {str(e)}")

    user = user_from_claims(payload)
    logger.debug(f"[AUTH] Authenticated {user.id} (organization {user.organization_id}, roles {user.roles})")
    return user
