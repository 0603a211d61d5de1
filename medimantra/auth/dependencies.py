"""
FastAPI dependencies for authentication and authorization.

Collaborators (settings, token service, mailer, storage) are built by the
application factory and kept on ``app.state``; the dependencies below hand
them to route handlers so tests can override any of them.
"""
import logging
from typing import Optional

from fastapi import Cookie, Depends, Header, Request
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.cloudinary import CloudinaryStorage
from ..core.security import TokenService
from ..database import get_db
from .exceptions import AccountDeactivatedException, InvalidTokenException, PermissionDeniedException
from .models import User, UserRole
from .utils import Mailer

# Set up logging
logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_storage(request: Request) -> CloudinaryStorage:
    return request.app.state.storage


def get_request_token(
    authorization: Optional[str] = Header(None),
    access_token: Optional[str] = Cookie(None, alias=ACCESS_TOKEN_COOKIE),
) -> Optional[str]:
    """
    Read the access token from the Authorization header, falling back to
    the ``accessToken`` cookie.
    """
    return TokenService.extract_from_header(authorization) or access_token


def get_current_user(
    token: Optional[str] = Depends(get_request_token),
    tokens: TokenService = Depends(get_token_service),
    db: Session = Depends(get_db),
) -> User:
    """
    Get current authenticated user from the access token.

    Args:
        token: Access token from the header or cookie
        tokens: Token service
        db: Database session

    Returns:
        User: Current authenticated user

    Raises:
        InvalidTokenException: If the token is missing, invalid or names no account
        TokenExpiredException: If the token has expired
        AccountDeactivatedException: If the account has been deactivated
    """
    if not token:
        raise InvalidTokenException("Not authenticated")

    payload = tokens.verify(token)
    user = db.get(User, payload["id"])
    if not user:
        logger.warning(f"Token refers to unknown user id {payload['id']}")
        raise InvalidTokenException("User not found")
    if not user.is_active:
        raise AccountDeactivatedException()
    return user


def require_role(role: UserRole):
    """
    Dependency factory to require a specific role.

    Args:
        role: Role allowed to access the route

    Returns:
        Function that checks the current user's role
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            logger.warning(f"User {current_user.id} denied: {role.value} role required")
            raise PermissionDeniedException(f"Access denied. {role.value.capitalize()} role required.")
        return current_user
    return role_checker


# Convenience dependencies for specific roles
require_patient = require_role(UserRole.PATIENT)
require_doctor = require_role(UserRole.DOCTOR)
require_admin = require_role(UserRole.ADMIN)
