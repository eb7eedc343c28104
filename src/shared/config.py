from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    APP_NAME: str = "devca"
    LOG_LEVEL: str = "INFO"
    METRICS_PROMETHEUS_ENABLED: bool = True

    # Key generation
    CA_RSA_KEY_SIZE: int = Field(default=2048, ge=2048)

    # Certificate defaults (used when CertOptions fields are omitted)
    CA_DEFAULT_VALID_FOR_HOURS: int = Field(default=24, gt=0)
    CA_DEFAULT_COMMON_NAME: str = "devca"


settings = Settings()
