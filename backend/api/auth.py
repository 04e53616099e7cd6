"""
Bearer-token authentication for the API.

Tokens are HS256 JWTs whose `sub` claim is the user id and whose `role`
claim is "user" or "admin". Routes decorated with @public skip the check.
"""

import logging
from typing import Callable, Optional

import jwt
from fastapi import Depends, Request
from pydantic import BaseModel

from api.config.settings import get_settings
from src.errors import AuthenticationError, AuthorizationError
from src.models.catalog import UserRole

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """Authenticated caller resolved from the bearer token."""
    id: str
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def public(endpoint: Callable) -> Callable:
    """Mark a route handler as reachable without a bearer token."""
    endpoint.is_public = True
    return endpoint


def create_access_token(user_id: str, role: UserRole = UserRole.USER, **claims) -> str:
    """Issue a token for the configured secret. Used by tests and local tooling."""
    settings = get_settings()
    payload = {"sub": user_id, "role": getattr(role, "value", role), **claims}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> CurrentUser:
    """
    Validate a bearer token and return the caller.

    Raises:
        AuthenticationError: If the secret is missing or the token is invalid
    """
    settings = get_settings()
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured")
        raise AuthenticationError("Kimlik doğrulama yapılandırılmamış")

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Oturum süresi doldu", code="token_expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {str(e)}")
        raise AuthenticationError("Geçersiz oturum")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Geçersiz oturum")
    try:
        role = UserRole(payload.get("role", UserRole.USER.value))
    except ValueError:
        raise AuthenticationError("Geçersiz oturum")
    return CurrentUser(id=str(user_id), role=role)


def authenticate(request: Request) -> Optional[CurrentUser]:
    """
    Router-level dependency: resolves the caller unless the matched
    endpoint is marked @public.
    """
    endpoint = request.scope.get("endpoint")
    if getattr(endpoint, "is_public", False):
        return None

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Giriş yapmanız gerekiyor")

    user = decode_token(token.strip())
    request.state.user = user
    return user


def get_current_user(user: Optional[CurrentUser] = Depends(authenticate)) -> CurrentUser:
    if user is None:
        raise AuthenticationError("Giriş yapmanız gerekiyor")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise AuthorizationError("Bu işlem için yönetici yetkisi gerekli")
    return user
