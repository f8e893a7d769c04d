from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # PocketBook device database
    POCKETBOOK_DB_PATH: str = "/mnt/ext1/system/explorer-3/explorer-3.db"
    DB_BUSY_TIMEOUT_MS: int = 2000
    DEFAULT_PROFILE_ID: int = 1

    # Sync Logic
    MAX_CONSECUTIVE_DB_ERRORS: int = 3
    EXIT_DEBOUNCE_SECONDS: int = 2

    # Host (KOReader) stores
    HOST_SETTINGS_PATH: str = "/mnt/ext1/applications/koreader/settings.reader.json"
    HOST_COLLECTIONS_PATH: str = "/mnt/ext1/applications/koreader/settings/collection.json"
    HOST_DOC_SETTINGS_SUFFIX: str = ".sdr.json"
    PERSIST_ENABLED: bool = True

    # System
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
