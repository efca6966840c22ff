"""Application settings."""
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

APP_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Environment-driven settings (prefix ``GALLERY_``)."""

    app_name: str = "Photo Gallery"

    # Blob store
    images_dir: Path = Path("images")
    thumbs_dir: Path = Path("thumbs")

    # Metadata store
    database_url: str = "sqlite:///gallery.db"

    # Templates / static assets
    templates_dir: Path = APP_DIR / "templates"
    static_dir: Path = APP_DIR / "static"

    # Policy constants
    max_upload_size: int = 20 << 20  # 20 MiB
    default_per: int = 12
    max_per: int = 100
    cache_max_age: int = 24 * 60 * 60
    max_thumb_dimension: int = 4096
    default_extension: str = ".jpg"
    gallery_thumb_size: str = "320x320"

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    # Server
    host: str = "127.0.0.1"
    port: int = 8080

    @field_validator("default_extension")
    def validate_default_extension(cls, v):
        if not v.startswith("."):
            v = f".{v}"
        return v.lower()

    @field_validator("default_per", "max_per", "max_upload_size", "max_thumb_dimension")
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    class Config:
        env_prefix = "GALLERY_"
        env_file = ".env"
        case_sensitive = False
