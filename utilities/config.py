"""
Configuration management using environment variables.
Handles storage, identity provider and logging settings with validation and defaults.
"""

from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings
from pathlib import Path


class ServiceConfig(BaseSettings):
    """
    Configuration class for the catalog service backends.
    Uses pydantic BaseSettings for environment variable management.
    """

    # MongoDB Configuration (backs the key-value store)
    mongodb_url: str = Field(default="mongodb://localhost:27017", env="MONGODB_URL")
    mongodb_database: str = Field(default="shelf_catalog", env="MONGODB_DATABASE")
    kv_collection: str = Field(default="kv_store", env="KV_COLLECTION")

    # Identity provider (Supabase Auth)
    supabase_url: Optional[str] = Field(default=None, env="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(default=None, env="SUPABASE_SERVICE_ROLE_KEY")
    identity_timeout: float = Field(default=10.0, env="IDENTITY_TIMEOUT")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False, env="USE_IN_MEMORY_BACKENDS")

    # Logging Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    # Development
    debug: bool = Field(default=False, env="DEBUG")

    @validator('identity_timeout')
    def validate_identity_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 60:
            raise ValueError('identity_timeout must be between 1 and 60 seconds')
        return v

    @validator('supabase_url')
    def strip_trailing_slash(cls, v):
        if v:
            return v.rstrip('/')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def has_identity_provider(self) -> bool:
        """Check whether Supabase credentials are configured."""
        return bool(self.supabase_url and self.supabase_service_role_key)


# Global configuration instance
config = ServiceConfig()
