from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Database
    DATABASE_URL: str = "sqlite:///./blog_platform.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Credential signing
    JWT_SIGNING_MODE: str = "hmac"  # "hmac" (per-tenant secret) or "rs256" (service keypair)
    JWT_PRIVATE_KEY: str = ""
    JWT_PUBLIC_KEY: str = ""
    JWT_KEY_ID: str = "blog-platform-jwt-key-1"
    DEFAULT_JWT_EXPIRY: str = "7d"

    # Tenant administration
    SUPER_ADMIN_API_KEY: str = ""
    ADMIN_EMAILS: str = ""
    TENANT_ID_PREFIX: str = "tenant-"

    # Engagement deduplication
    IP_HASH_SALT: str = "default-salt-change-in-production"
    VIEW_DEDUP_POLICY: str = "daily"  # "daily" or "rolling"
    VIEW_TIMEZONE: str = "Asia/Seoul"
    VIEW_WINDOW_HOURS: int = 24

    # Sibling services
    AUTH_SERVICE_URL: str = "http://blog-platform-auth:3001"
    STORAGE_SERVICE_URL: str = "http://blog-platform-storage:3006"
    OUTBOUND_TIMEOUT_SECONDS: float = 5.0
    AUTHOR_CACHE_TTL_SECONDS: int = 60
    GOOGLE_CERTS_URL: str = "https://www.googleapis.com/oauth2/v3/certs"

    # Application
    APP_NAME: str = "Blog Platform Identity API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = ""
    CORS_ALLOW_CREDENTIALS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from comma-separated string"""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def admin_emails_list(self) -> list[str]:
        """Parse ADMIN_EMAILS into a lower-cased allow-list"""
        if not self.ADMIN_EMAILS:
            return []
        return [
            email.strip().lower() for email in self.ADMIN_EMAILS.split(",") if email.strip()
        ]

    @property
    def jwt_private_key_pem(self) -> str:
        """Private key PEM with escaped newlines restored"""
        return self.JWT_PRIVATE_KEY.replace("\\n", "\n")

    @property
    def jwt_public_key_pem(self) -> str:
        """Public key PEM with escaped newlines restored"""
        return self.JWT_PUBLIC_KEY.replace("\\n", "\n")


# Global settings instance
settings = Settings()
