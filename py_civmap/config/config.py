import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Process-level settings pulled from environment variables."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Map Generation Configuration
    default_world_size: str = Field(default="Standard", description="World size used when none is given")
    default_seed: int = Field(default=0, description="Seed used when none is given")
    ruleset_path: str = Field(default="", description="Ruleset JSON to load instead of the bundled one")

    model_config = SettingsConfigDict(
        env_prefix="CIVMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Instantiate singleton settings object
settings = Settings()
