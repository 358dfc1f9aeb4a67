"""
Configuration settings for comic-notes.

Environment variables:
    COMIC_NOTES_COMICVINE_API_KEY      ComicVine API key (required for network calls)
    COMIC_NOTES_VAULT_DIR              Root directory of the note vault
    COMIC_NOTES_COMICS_FOLDER          Vault folder for issue notes
    COMIC_NOTES_RATE_LIMIT_DELAY_MS    Minimum spacing between API requests (>= 500)
    COMIC_NOTES_CREATE_CREATOR_NOTES   Create/merge creator and role notes
    COMIC_NOTES_CREATE_AUXILIARY_NOTES Create/merge volume notes
    COMIC_NOTES_DOWNLOAD_IMAGES        Store cover images inside the vault
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_RATE_LIMIT_DELAY_MS = 500


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COMIC_NOTES_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    comicvine_api_key: str = ""
    comicvine_base_url: str = "https://comicvine.gamespot.com/api"
    user_agent: str = "comic-notes/0.1 (personal comic library notes)"
    request_timeout_s: float = 30.0

    vault_dir: Path = Path(".")
    comics_folder: str = "Comics"
    creators_folder: str = "Creators"
    roles_folder: str = "Roles"
    volumes_folder: str = "Volumes"
    covers_folder: str = "Covers"

    default_page_count: int = 22
    enable_reading_tracker: bool = True
    rate_limit_delay_ms: int = 1000
    create_creator_notes: bool = True
    create_auxiliary_notes: bool = True
    download_images: bool = False

    @field_validator("rate_limit_delay_ms")
    @classmethod
    def _enforce_rate_limit_floor(cls, value: int) -> int:
        return max(value, MIN_RATE_LIMIT_DELAY_MS)

    @field_validator("default_page_count")
    @classmethod
    def _positive_page_count(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default_page_count must be positive")
        return value

    @field_validator("comics_folder")
    @classmethod
    def _default_comics_folder(cls, value: str) -> str:
        return value.strip().strip("/") or "Comics"

    @property
    def rate_limit_delay_s(self) -> float:
        return self.rate_limit_delay_ms / 1000.0


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
