from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "EarningsTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-central-1")
    DYNAMO_USERS_TABLE: str = Field(default="earnings-tracker-users")
    DYNAMO_EARNINGS_TABLE: str = Field(default="earnings-tracker-earnings")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # e.g. http://localhost:8001 for DynamoDB Local

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    SESSION_COOKIE_NAME: str = "session"

    # Exchange rate (UAH per 1 USD)
    RATE_API_URL: str = "https://bank.gov.ua/NBUStatService/v1/statdirectory/exchange?valcode=USD&json"
    RATE_FALLBACK: float = 41.0
    RATE_TIMEOUT_SECONDS: float = 8.0


settings = Settings()
