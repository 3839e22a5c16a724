from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    PORT: int = 8787
    CORS_ORIGIN: str = "*"

    # OpenAI settings
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-5.2"
    OPENAI_TIMEOUT_SECONDS: float = 60.0
    OPENAI_MAX_RETRIES: int = 1
    OPENAI_MAX_OUTPUT_TOKENS: int = 1800

    # Shared secret between the forwarding layer and this backend
    MHP_PROXY_SECRET: str | None = None

    # =================================================================
    # INSIGHT JOBS
    # =================================================================
    INSIGHTS_JOB_TTL_SECONDS: float = 900.0  # 15 minutes
    INSIGHTS_JOB_PRUNE_INTERVAL_SECONDS: float = 60.0
    INSIGHTS_MAX_DAYS: int = 14
    INSIGHTS_RAW_PREVIEW_CHARS: int = 4000
    INSIGHTS_DEFAULT_TIME_ZONE: str = "America/Los_Angeles"

    # =================================================================
    # RATE LIMITING - fixed windows, in milliseconds
    # =================================================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_BUCKETS: int = 5000
    RATE_LIMIT_INSIGHTS_WINDOW_MS: int = 60_000
    RATE_LIMIT_INSIGHTS_MAX: int = 60
    RATE_LIMIT_INSIGHTS_POST_WINDOW_MS: int = 600_000
    RATE_LIMIT_INSIGHTS_POST_MAX: int = 10
    RATE_LIMIT_INSIGHTS_GET_WINDOW_MS: int = 60_000
    RATE_LIMIT_INSIGHTS_GET_MAX: int = 90
    RATE_LIMIT_STRESS_WINDOW_MS: int = 60_000
    RATE_LIMIT_STRESS_MAX: int = 60

    # Client IP extraction
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = ["127.0.0.1"]

    # Forwarding layer only
    MHP_BACKEND_ORIGIN: str | None = None
    PROXY_PORT: int = 8788

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    def openai_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY and self.OPENAI_API_KEY.strip())

    def cors_origins(self) -> list[str]:
        raw = self.CORS_ORIGIN.strip()
        if raw == "*":
            return ["*"]
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    def get_rate_limits(self) -> dict:
        """
        Get the limiter configurations.

        Every /insights request passes the "insights" limiter, then the
        limiter matching its method. /stress has its own "stress" limiter.
        """
        return {
            "insights": {
                "window_ms": self.RATE_LIMIT_INSIGHTS_WINDOW_MS,
                "max_requests": self.RATE_LIMIT_INSIGHTS_MAX,
            },
            "insights_post": {
                "window_ms": self.RATE_LIMIT_INSIGHTS_POST_WINDOW_MS,
                "max_requests": self.RATE_LIMIT_INSIGHTS_POST_MAX,
            },
            "insights_get": {
                "window_ms": self.RATE_LIMIT_INSIGHTS_GET_WINDOW_MS,
                "max_requests": self.RATE_LIMIT_INSIGHTS_GET_MAX,
            },
            "stress": {
                "window_ms": self.RATE_LIMIT_STRESS_WINDOW_MS,
                "max_requests": self.RATE_LIMIT_STRESS_MAX,
            },
        }


settings = Settings()
