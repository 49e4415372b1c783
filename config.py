"""
Configuration management for the SSIS package analyzer.
"""
import logging
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class Settings(BaseSettings):
    """Application settings and configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SSIS_ANALYZER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Package location
    package_directory: Optional[str] = Field(default=None)  # base for relative package paths
    package_extension: str = Field(default=".dtsx")

    # Analysis Settings
    max_resolve_depth: int = Field(default=10)

    # Output and logging
    output_format: str = Field(default="text")
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)


# Global settings instance
settings = Settings()


def configure_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure root logging with a console handler and an optional file handler."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
