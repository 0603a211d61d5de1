"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        database_url: SQLAlchemy connection string
        jwt_secret: Secret used to sign access tokens
        jwt_refresh_secret: Secret used to sign refresh tokens
        algorithm: Algorithm used for JWT encoding (always HS256)
        access_token_expire_days: Access token lifetime
        refresh_token_expire_days: Refresh token lifetime
        token_refresh_threshold_hours: Remaining validity below which an
            access token may be renewed
        email_verification_expire_hours: Lifetime of an email verification link
        password_reset_expire_minutes: Lifetime of a password reset link

        # Email settings
        mail_username: SMTP server username
        mail_password: SMTP server password
        mail_from: Sender email address
        mail_port: SMTP server port
        mail_server: SMTP server hostname
        mail_starttls: Whether to use STARTTLS
        smtp_timeout: SMTP connection timeout in seconds

        # Frontend settings
        client_url: Base URL of the client application, used in email links
        cors_origins: Origins allowed by the CORS middleware

        # Bootstrap admin settings (optional)
        bootstrap_admin_email: Optional admin email for first admin creation
        bootstrap_admin_password: Optional admin password for first admin creation
    """
    # Database settings
    database_url: str = "sqlite:///./medimantra.db"

    # JWT settings. Secrets are optional here so the app can boot, but token
    # issuance fails with ConfigurationMissingException while they are unset.
    jwt_secret: Optional[str] = None
    jwt_refresh_secret: Optional[str] = None
    algorithm: str = "HS256"
    access_token_expire_days: int = 1
    refresh_token_expire_days: int = 30
    token_refresh_threshold_hours: int = 24
    email_verification_expire_hours: int = 24
    password_reset_expire_minutes: int = 30

    # Email settings
    mail_username: Optional[str] = None
    mail_password: Optional[str] = None
    mail_from: Optional[str] = None
    mail_port: int = 587
    mail_server: Optional[str] = None
    mail_starttls: bool = True
    smtp_timeout: int = 30

    # Frontend settings
    client_url: str = "http://localhost:3000"
    cors_origins: List[str] = ["http://localhost:3000"]
    environment: str = "development"

    # Cloudinary settings
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    # Bootstrap admin settings (optional - only used for first admin creation)
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    class Config:
        """Configuration for environment variables loading"""
        env_file = ".env"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Settings dependency - builds the settings once per process.

    Returns:
        Settings: Application settings
    """
    return Settings()
