"""
Authentication-specific exceptions.
"""
from fastapi import HTTPException, status


class AuthException(HTTPException):
    """Base class for authentication exceptions."""
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class InvalidCredentialsException(AuthException):
    """Exception raised when credentials are invalid."""
    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class EmailAlreadyExistsException(AuthException):
    """Exception raised when email already exists."""
    def __init__(self, detail: str = "Email already registered"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ValidationFailureException(AuthException):
    """Exception raised when a required field is missing or malformed."""
    def __init__(self, detail: str = "Validation failed"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AccountDeactivatedException(AuthException):
    """Exception raised when a deactivated account tries to authenticate."""
    def __init__(self, detail: str = "Your account has been deactivated. Please contact support."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ProfileMissingException(AuthException):
    """Exception raised when the role-specific profile of an account is absent."""
    def __init__(self, detail: str = "Profile not found. Please contact support."):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AccountNotFoundException(AuthException):
    """Exception raised when no account matches the request."""
    def __init__(self, detail: str = "Account not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class TokenExpiredException(AuthException):
    """Exception raised when token has expired."""
    def __init__(self, detail: str = "Token has expired"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class InvalidTokenException(AuthException):
    """Exception raised when token is invalid."""
    def __init__(self, detail: str = "Invalid token"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class TokenNotEligibleException(AuthException):
    """Exception raised when a token still has too much validity left to be renewed."""
    def __init__(self, detail: str = "Token is not eligible for refresh"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class VerificationTokenInvalidException(AuthException):
    """Exception raised when an email verification token is unknown or expired."""
    def __init__(self, detail: str = "Invalid or expired verification token"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ResetTokenInvalidException(AuthException):
    """Exception raised when a password reset token is unknown or expired."""
    def __init__(self, detail: str = "Invalid or expired reset token"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class EmailAlreadyVerifiedException(AuthException):
    """Exception raised when verification is requested for a verified email."""
    def __init__(self, detail: str = "Email is already verified"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PermissionDeniedException(AuthException):
    """Exception raised when user doesn't have the required role."""
    def __init__(self, detail: str = "Access denied. Insufficient permissions."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
