"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens, a FastAPI
dependency `get_current_user` that validates the bearer token and
returns the corresponding active `User`, and `require_roles` for routes
that only some roles may call.

Token verification raises HTTPExceptions on failure so it can be used
directly inside route dependencies. GraphQL resolvers go through
`user_from_token`, which raises the service-layer `AuthenticationFailed`
instead.
"""

from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import get_session
from .errors import AuthenticationFailed

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises `AuthenticationFailed`.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationFailed("token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationFailed("invalid token")


def user_from_token(session: Session, token: Optional[str]) -> models.User:
    """Resolve the active user a token was issued to."""
    if not token:
        raise AuthenticationFailed("authentication token is missing")
    payload = decode_token(token)
    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationFailed("invalid token payload")
    user = repositories.UserRepository(session).get(user_id)
    if not user:
        raise AuthenticationFailed("user not found")
    if user.status != models.UserStatus.ACTIVE:
        raise AuthenticationFailed("user account is inactive")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The function extracts the bearer token from the request, decodes it
    and looks the user up in the request's session. It raises an
    HTTPException(401) for any authentication issue.
    """
    token = credentials.credentials if credentials else None
    try:
        return user_from_token(session, token)
    except AuthenticationFailed as exc:
        raise HTTPException(status_code=401, detail=exc.message, headers={"WWW-Authenticate": "Bearer"})


def require_roles(*roles: models.Role):
    """Build a dependency that lets only `roles` through (403 otherwise)."""
    def checker(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="you do not have permission to perform this action")
        return user
    return checker
