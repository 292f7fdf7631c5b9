from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Back-office Fallback Store"

    # Storage backend: "memory" keeps the snapshot in a process global,
    # "file" keeps it on disk under STORE_DIR (one file per key).
    STORE_BACKEND: str = "memory"
    STORE_DIR: str = ".backoffice-store"

    # Storage keys
    DATA_KEY: str = "businessData"
    INITIALIZED_KEY: str = "memoryStorageInitialized"
    SYNC_TIMESTAMP_KEYS: List[str] = ["dataSyncTimestamp", "lastGlobalSync"]

    DEFAULT_LOCALE: str = "en-US"
    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True
        env_prefix = "BACKOFFICE_"

settings = Settings()
