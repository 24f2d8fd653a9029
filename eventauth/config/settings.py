from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    JWT_SECRET: str = "dev-secret-change-me-in-production"
    JWT_ALGO: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 240

    STORE_BACKEND: str = "memory"        # "redis" | "memory"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    STORE_KEY_PREFIX: str = "eventauth"

    OTP_LENGTH: int = 6
    OTP_TTL_SECONDS: int = 600
    OTP_SENTINEL_CODE: str = "123456"

    OTP_IDENTITY_LIMIT: int = 3
    OTP_ORIGIN_LIMIT: int = 5
    OTP_WINDOW_SECONDS: int = 900

    SUSPENSION_THRESHOLD: int = 5
    FAILED_ATTEMPTS_WINDOW_SECONDS: int = 900
    SUSPENSION_TTL_SECONDS: Optional[int] = None   # None -> suspended until cleared

    PIN_LIMIT: int = 5
    PIN_WINDOW_SECONDS: int = 900
    PIN_SESSION_TTL_SECONDS: int = 8 * 3600
    PIN_FINGERPRINT_BINDING: bool = True
    FINGERPRINT_SECRET: str = "dev-fingerprint-secret"

    SMTP_ENABLED: str = "auto"           # "auto" | "true" | "false"
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "noreply@eventauth.local"
    SMTP_USE_TLS: bool = True
    EMAIL_TIMEOUT_SECONDS: float = 10.0

    EVENTS_DATA_DIR: str = "data/events"

    # honour X-Forwarded-For only when running behind a trusted proxy
    TRUST_PROXY_HEADERS: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"

    def smtp_enabled(self) -> bool:
        """
        "auto" sends only when credentials are fully configured,
        "true"/"false" force the choice.
        """
        mode = self.SMTP_ENABLED.lower()
        if mode == "false":
            return False
        if mode == "true":
            return True
        return bool(self.SMTP_HOST and self.SMTP_USERNAME and self.SMTP_PASSWORD)


config_settings = Settings()
