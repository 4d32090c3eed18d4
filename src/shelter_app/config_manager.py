"""Configuration Manager for the shelter client."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigManager(BaseSettings):
    """Manages client configuration settings using Pydantic BaseSettings."""

    model_config = SettingsConfigDict(env_prefix='SHELTER_', case_sensitive=False, extra='ignore')

    # API settings
    api_base_url: str = 'http://localhost:5000'
    api_timeout: float = 10.0
    api_retry_attempts: int = 3
    access_token: str = ''
    user_id: str = ''  # author of media records

    # Upload queue settings
    upload_max_retries: int = 3
    upload_retry_delay: float = 1.0  # seconds
    upload_max_workers: int = 4
    auto_acknowledge_uploads: bool = True

    # Local storage settings
    data_dir: Optional[str] = None  # defaults to the user data directory
    db_path: Optional[str] = None
    spool_dir: Optional[str] = None

    # Image processing settings
    image_max_width: int = 2048
    image_max_height: int = 2048
    image_compression_quality: int = 80  # JPEG quality (1-100)
    thumbnail_max_size: int = 200  # Maximum preview dimension in pixels

    def get(self, key, default=None):
        """Get a configuration value."""
        return getattr(self, key, default)

    def set(self, key, value):
        """Set a configuration value; only known settings are accepted."""
        if key not in type(self).model_fields:
            raise KeyError(f"Unknown setting: {key}")
        setattr(self, key, value)

    def get_all(self):
        """Get all configuration values as dictionary."""
        return self.model_dump()
