from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.errors import ConfigurationError


class Settings(BaseSettings):
    app_name: str = "blob-upload-api"
    app_env: str = "development"
    app_port: int = Field(default=3000, validation_alias=AliasChoices("APP_PORT", "PORT"))
    log_level: str = "INFO"

    # Storage account (user delegation SAS, no account keys)
    azure_storage_account_name: str = ""
    azure_storage_account_url: str = ""  # e.g. "http://127.0.0.1:10000/devstoreaccount1" for an emulator
    azure_client_id: str = ""  # user-assigned managed identity; empty means system-assigned / CLI
    storage_timeout_seconds: int = 10

    # CORS: comma-separated browser origins. Empty means no cross-origin access.
    allowed_origins: str = Field(default="", validation_alias=AliasChoices("ALLOWED_ORIGINS", "WEB_URL"))

    default_container: str = "upload"
    upload_token_minutes: int = 10
    read_token_minutes: int = 60
    max_token_minutes: int = 60

    verify_on_startup: bool = True
    verify_attempts: int = 3
    verify_delay_seconds: float = 2.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    @property
    def account_url(self) -> str:
        if self.azure_storage_account_url:
            return self.azure_storage_account_url.rstrip("/")
        return f"https://{self.azure_storage_account_name}.blob.core.windows.net"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def require_account(self) -> str:
        if not self.azure_storage_account_name:
            raise ConfigurationError("AZURE_STORAGE_ACCOUNT_NAME environment variable is required")
        return self.azure_storage_account_name


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
