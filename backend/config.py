from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "PCOS Lifestyle Coach"
    DATABASE_URL: str = "sqlite:///data/coach.db"
    DATA_DIR: Path = Path("data")
    DB_TIMEOUT_SECONDS: int = 10
    BASE_PATH: str = ""  # e.g. "/usr/417" when served behind a shared host
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]
    SESSION_COOKIE_NAME: str = "coach_session"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "lax"  # strict | lax | none
    SESSION_COOKIE_DOMAIN: str | None = None
    SESSION_COOKIE_PATH: str = "/"
    SESSION_IDLE_MINUTES: int = 120
    SESSION_ABSOLUTE_HOURS: int = 24
    BCRYPT_ROUNDS: int = 12
    PASSWORD_POLICY_ENFORCED: bool = True
    RATE_LIMIT_AUTH_LOGIN_ATTEMPTS: int = 10
    RATE_LIMIT_AUTH_LOGIN_WINDOW_SECONDS: int = 300
    RATE_LIMIT_AUTH_REGISTER_ATTEMPTS: int = 5
    RATE_LIMIT_AUTH_REGISTER_WINDOW_SECONDS: int = 600
    RECIPE_SEED_FILE: Path | None = None
    SECURITY_HEADERS_ENABLED: bool = True
    SECURITY_CSP: str = (
        "default-src 'self'; "
        "img-src 'self' data:; "
        "style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; "
        "frame-ancestors 'none'; "
        "base-uri 'self'; "
        "form-action 'self';"
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"production", "prod", "staging"}

    @property
    def normalized_base_path(self) -> str:
        """Mount prefix with a leading slash and no trailing slash, or "" for root."""
        raw = (self.BASE_PATH or "").strip().strip("/")
        return f"/{raw}" if raw else ""

    def validate_security_configuration(self) -> None:
        if not self.is_production_like:
            return

        errors: list[str] = []
        if not self.SESSION_COOKIE_SECURE:
            errors.append("SESSION_COOKIE_SECURE must be true in production-like environments")
        if (self.SESSION_COOKIE_SAMESITE or "").strip().lower() == "none" and not self.SESSION_COOKIE_SECURE:
            errors.append("SESSION_COOKIE_SAMESITE=none requires SESSION_COOKIE_SECURE=true")
        if int(self.BCRYPT_ROUNDS) < 12:
            errors.append("BCRYPT_ROUNDS must be at least 12")
        if not self.PASSWORD_POLICY_ENFORCED:
            errors.append("PASSWORD_POLICY_ENFORCED must be true in production-like environments")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Insecure production configuration: {joined}")


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
