from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    # App Settings
    APP_NAME: str = "CoinMatrix"
    PROJECT_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "*"  # Comma-separated string or "*"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_DEFAULT: str = "120/minute"

    DATABASE_URL: str
    SECRET_KEY: str = ""  # Required; validate below
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Market data cache
    CACHE_LIFETIME_MINUTES: int = 5
    REFRESH_INTERVAL_MINUTES: int = 5
    SCHEDULER_ENABLED: bool = True
    REFRESH_ON_STARTUP: bool = True
    MARKETS_PAGE_SIZE: int = 50

    # Upstream providers
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    CMC_BASE_URL: str = "https://pro-api.coinmarketcap.com"
    CMC_API_KEY: str = ""
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Parse ALLOWED_ORIGINS
    @property
    def allowed_origins_list(self) -> List[str]:
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def secret_key_valid(self) -> bool:
        return bool(self.SECRET_KEY and self.SECRET_KEY != "your-secret-key")

    @property
    def cache_max_age_seconds(self) -> int:
        return self.CACHE_LIFETIME_MINUTES * 60


settings = Settings()

# Validate SECRET_KEY on import
if not settings.secret_key_valid:
    raise ValueError(
        "SECRET_KEY must be set in .env (run python generate_secret.py to generate one)."
    )
