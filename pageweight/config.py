# pageweight/config.py

import json
from typing import Annotated, List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application settings
    app_name: str = Field(default="PageWeight")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # Server settings
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from various formats."""
        if isinstance(v, str):
            # Handle comma-separated string
            if ',' in v:
                return [origin.strip() for origin in v.split(',')]
            # Handle single URL string
            elif v.startswith('http'):
                return [v]
            # Handle JSON string
            else:
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v]
        return v

    # API settings
    api_v1_prefix: str = Field(default="/api/v1")

    # Rate limiting
    rate_limit_requests: int = Field(default=10)
    rate_limit_window: int = Field(default=60)

    # Fetch settings
    request_timeout: float = Field(default=30.0)
    connect_timeout: float = Field(default=10.0)
    follow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=10)
    max_html_size: int = Field(default=10 * 1024 * 1024)  # 10MB
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
        )
    )
    accept_language: str = Field(default="en-US,en;q=0.5")

    # Logging
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=True)
    log_dir: str = Field(default="logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"  # Ignore unknown environment variables
    }


# Global settings instance
settings = Settings()
