"""
Importer configuration.

Every value can be overridden through environment variables or a .env file;
each group has its own prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Firestore rejects commits with more than 500 writes
FIRESTORE_MAX_BATCH_WRITES = 500


class FirebaseConfig(BaseSettings):
    """Firebase project the decks are imported into."""

    model_config = SettingsConfigDict(env_prefix="FIREBASE_", env_file=".env", extra="ignore")

    project_id: str = ""
    storage_bucket: str = ""
    # OAuth2 bearer token with Firestore and Cloud Storage scopes
    access_token: str = ""
    # Account recorded as creator and owner of everything imported
    account_id: str = ""
    timeout: float = 60.0


class ImportConfig(BaseSettings):
    """Deck import pipeline settings."""

    model_config = SettingsConfigDict(env_prefix="IMPORT_", env_file=".env", extra="ignore")

    # Job ledger: {deck_id: {downloaded, imported, topics}}
    decks_path: Path = Path("decks.json")
    # One directory per deck, holding main.apkg before unpacking
    downloads_path: Path = Path("downloads")
    max_cards_per_section: int = Field(default=100, ge=1)
    card_chunk_size: int = Field(default=FIRESTORE_MAX_BATCH_WRITES, ge=1, le=FIRESTORE_MAX_BATCH_WRITES)
    asset_chunk_size: int = Field(default=50, ge=1)


class DownloadConfig(BaseSettings):
    """Shared deck download settings."""

    model_config = SettingsConfigDict(env_prefix="DOWNLOAD_", env_file=".env", extra="ignore")

    url_template: str = "https://ankiweb.net/shared/downloadDeck/{deck_id}"
    timeout: float = 120.0


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = "INFO"
    # "console" or "json"
    format: str = "console"
    # Extra JSON log file, rotated by loguru
    file: Path | None = None
    rotation: str = "50 MB"
    retention: str = "14 days"


class AppConfig(BaseSettings):
    """General application configuration."""

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")

    name: str = "deck-importer"
    debug: bool = False


class Settings:
    """Aggregator of all configuration groups."""

    def __init__(self) -> None:
        self.firebase = FirebaseConfig()
        self.importer = ImportConfig()
        self.download = DownloadConfig()
        self.logging = LoggingConfig()
        self.app = AppConfig()


@lru_cache
def get_settings() -> Settings:
    """Get the settings singleton (cached)."""
    return Settings()
