from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "Vital Health"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite:///data/vital.db"
    DATA_DIR: Path = Path("data")
    CORS_ORIGINS: list[str] = [
        "http://localhost:5000",
        "http://localhost:5173",
        "https://localhost:5000",
    ]
    AUTH_COOKIE_NAME: str = "vital_session"
    AUTH_COOKIE_SECURE: bool = False
    AUTH_COOKIE_HTTPONLY: bool = True
    AUTH_COOKIE_SAMESITE: str = "lax"  # strict | lax | none
    AUTH_COOKIE_DOMAIN: str | None = None
    AUTH_COOKIE_PATH: str = "/"
    SESSION_TTL_HOURS: int = 168
    NONCE_BYTES: int = 16
    TASK_DAY_TIMEZONE: str = "UTC"
    TASK_COMPLETION_POINTS: int = 10
    STREAK_WEEK_BONUS: int = 50
    STREAK_MONTH_BONUS: int = 100
    REFERRAL_BONUS_POINTS: int = 100
    REFERRAL_CODE_PREFIX: str = "VITAL"
    REDEEM_MIN_POINTS: int = 10000
    REDEEM_POINTS_PER_UNIT: int = 1000
    REDEEM_UNIT_VALUE: int = 10
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://api.openai.com/v1"
    AI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT_SECONDS: int = 30
    AI_CHAT_MAX_TOKENS: int = 200
    AI_IMAGE_MAX_TOKENS: int = 300
    AI_SYMPTOM_MAX_TOKENS: int = 150
    SECURITY_HEADERS_ENABLED: bool = True
    SECURITY_CSP: str = (
        "default-src 'self'; "
        "img-src 'self' data: blob:; "
        "style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; "
        "connect-src 'self' https: wss:; "
        "font-src 'self' data:; "
        "frame-ancestors 'none'; "
        "base-uri 'self'; "
        "form-action 'self';"
    )
    RATE_LIMIT_AUTH_NONCE_ATTEMPTS: int = 20
    RATE_LIMIT_AUTH_NONCE_WINDOW_SECONDS: int = 300
    RATE_LIMIT_AUTH_VERIFY_ATTEMPTS: int = 10
    RATE_LIMIT_AUTH_VERIFY_WINDOW_SECONDS: int = 300
    RATE_LIMIT_CHAT_MESSAGES: int = 30
    RATE_LIMIT_CHAT_WINDOW_SECONDS: int = 60

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"production", "prod", "staging"}

    def validate_security_configuration(self) -> None:
        if not self.is_production_like:
            return

        errors: list[str] = []
        if not self.AUTH_COOKIE_SECURE:
            errors.append("AUTH_COOKIE_SECURE must be true in production-like environments")
        if (self.AUTH_COOKIE_SAMESITE or "").strip().lower() == "none" and not self.AUTH_COOKIE_SECURE:
            errors.append("AUTH_COOKIE_SAMESITE=none requires AUTH_COOKIE_SECURE=true")
        if int(self.NONCE_BYTES) < 16:
            errors.append("NONCE_BYTES must be at least 16")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Insecure production configuration: {joined}")


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
