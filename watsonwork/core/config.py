from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    WATSONWORK_APP_ID: str | None = None
    WATSONWORK_APP_SECRET: str | None = None

    # 预先签发的 JWT，配置后跳过 OAuth 获取流程
    WATSONWORK_JWT_TOKEN: str | None = None

    WATSONWORK_BASE_URL: str = "https://api.watsonwork.ibm.com"
    WATSONWORK_GRAPHQL_VIEW: str = "PUBLIC, BETA, EXPERIMENTAL"
    WATSONWORK_LOG_LEVEL: Literal["error", "warn", "info", "verbose", "debug"] = "info"

    # Token lifecycle
    WATSONWORK_TOKEN_RETRY_INTERVAL: float = 10.0  # seconds
    WATSONWORK_TOKEN_MAX_FAILURES: int = 10
    WATSONWORK_TOKEN_REFRESH_MARGIN: float = 60.0  # seconds before exp

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


settings = Settings()
