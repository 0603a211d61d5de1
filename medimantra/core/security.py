"""
Core security utilities for authentication and password handling.
"""
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from ..auth.exceptions import InvalidTokenException, TokenExpiredException, TokenNotEligibleException
from ..config import Settings
from ..exceptions import ConfigurationMissingException

# Set up logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BEARER_PREFIX = "Bearer"


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to compare against

    Returns:
        bool: True if password matches hash
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_verification_token() -> str:
    """
    Generate a random email verification token (32 bytes, hex encoded).

    Returns:
        str: Raw token, to be emailed and never stored
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash a token for secure storage.

    Args:
        token: Token to hash

    Returns:
        str: SHA-256 hex digest
    """
    return hashlib.sha256(token.encode()).hexdigest()


def verify_token_hash(token: str, hashed_token: str) -> bool:
    """
    Verify a token against a hash.

    Args:
        token: Plain text token
        hashed_token: Hashed token to compare against

    Returns:
        bool: True if token matches hash
    """
    return hmac.compare_digest(hash_token(token), hashed_token)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_token_expired(expiry_time: datetime) -> bool:
    """
    Check if a stored token expiry has passed.

    Args:
        expiry_time: Token expiration time

    Returns:
        bool: True if token has expired
    """
    return datetime.now(timezone.utc) > as_utc(expiry_time)


def get_token_expiry_time(hours: int = 24, minutes: int = 0) -> datetime:
    """
    Get token expiration time.

    Args:
        hours: Hours until expiration
        minutes: Additional minutes until expiration

    Returns:
        datetime: Expiration time
    """
    return datetime.now(timezone.utc) + timedelta(hours=hours, minutes=minutes)


class TokenService:
    """
    Issues and verifies signed session tokens.

    Access and refresh tokens are signed with distinct secrets using a single
    fixed algorithm (HS256). The payload carries the account id under ``id``.
    """

    def __init__(self, settings: Settings):
        self.access_secret = settings.jwt_secret
        self.refresh_secret = settings.jwt_refresh_secret
        self.algorithm = settings.algorithm
        self.access_expires = timedelta(days=settings.access_token_expire_days)
        self.refresh_expires = timedelta(days=settings.refresh_token_expire_days)
        self.refresh_threshold = timedelta(hours=settings.token_refresh_threshold_hours)

    def _secret(self, refresh: bool) -> str:
        secret = self.refresh_secret if refresh else self.access_secret
        if not secret:
            name = "JWT_REFRESH_SECRET" if refresh else "JWT_SECRET"
            logger.error(f"{name} is not configured")
            raise ConfigurationMissingException(f"{name} is not defined in environment variables")
        return secret

    def _encode(self, data: Dict[str, Any], expires_delta: timedelta, refresh: bool) -> str:
        secret = self._secret(refresh)
        now = datetime.now(timezone.utc)
        to_encode = data.copy()
        to_encode.update({
            "iat": now,
            "exp": now + expires_delta,
            "type": "refresh" if refresh else "access",
        })
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def create_access_token(self, account_id: int, expires_delta: Optional[timedelta] = None, **claims) -> str:
        """
        Create a JWT access token.

        Args:
            account_id: Account identifier encoded under ``id``
            expires_delta: Token lifetime (default: access_token_expire_days)
            claims: Extra claims to include

        Returns:
            str: Encoded JWT token
        """
        data = {"id": account_id, **claims}
        return self._encode(data, expires_delta or self.access_expires, refresh=False)

    def create_refresh_token(self, account_id: int, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a refresh token for token renewal.

        Args:
            account_id: Account identifier encoded under ``id``
            expires_delta: Token lifetime (default: refresh_token_expire_days)

        Returns:
            str: Encoded refresh token
        """
        return self._encode({"id": account_id}, expires_delta or self.refresh_expires, refresh=True)

    def issue_tokens(self, account_id: int) -> Dict[str, str]:
        """
        Issue an access token and a refresh token for an account.

        Both secrets are checked before anything is signed.

        Raises:
            ConfigurationMissingException: If either signing secret is unset
        """
        self._secret(refresh=False)
        self._secret(refresh=True)
        return {
            "access_token": self.create_access_token(account_id),
            "refresh_token": self.create_refresh_token(account_id),
        }

    def verify(self, token: str, refresh: bool = False) -> Dict[str, Any]:
        """
        Verify and decode a JWT token.

        Args:
            token: JWT token string
            refresh: Verify against the refresh secret instead of the access secret

        Returns:
            Dict containing the token payload

        Raises:
            TokenExpiredException: If the signature is valid but the token has expired
            InvalidTokenException: For any other verification failure
        """
        secret = self._secret(refresh)
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredException()
        except JWTError as e:
            logger.warning(f"Token verification failed: {str(e)}")
            raise InvalidTokenException()

        if payload.get("id") is None:
            raise InvalidTokenException("Invalid token payload")
        expected_type = "refresh" if refresh else "access"
        if payload.get("type", expected_type) != expected_type:
            raise InvalidTokenException()
        return payload

    @staticmethod
    def extract_from_header(authorization: Optional[str]) -> Optional[str]:
        """
        Extract the token from an ``Authorization: Bearer <token>`` header value.

        Returns:
            The token, or None if the header is absent or malformed
        """
        if not authorization or not isinstance(authorization, str):
            return None
        parts = authorization.split(" ")
        if len(parts) != 2:
            return None
        scheme, token = parts
        if scheme != BEARER_PREFIX or not token:
            return None
        return token

    def refresh(self, token: str) -> str:
        """
        Re-issue an access token that is close to expiry.

        Args:
            token: Current, still valid access token

        Returns:
            str: New access token for the same account

        Raises:
            TokenNotEligibleException: If more than the refresh threshold remains
        """
        payload = self.verify(token)
        remaining = datetime.fromtimestamp(payload["exp"], tz=timezone.utc) - datetime.now(timezone.utc)
        if remaining > self.refresh_threshold:
            raise TokenNotEligibleException()
        return self.create_access_token(payload["id"], refreshed=True, previous_exp=payload["exp"])
