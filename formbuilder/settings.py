import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

SETTINGS_FILE_NAME = "formbuilder.yaml"

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def load_settings_file(path: Path | None = None) -> dict:
    """Load and parse formbuilder.yaml with environment variable interpolation.

    Raises FileNotFoundError when the file does not exist.
    """
    config_path = path or Path.cwd() / SETTINGS_FILE_NAME

    if not config_path.exists():
        raise FileNotFoundError(f"{SETTINGS_FILE_NAME} not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class Settings(BaseSettings):
    """Library-wide rendering defaults.

    Every value can be overridden with a FORMBUILDER_* environment variable,
    a .env file, or a top-level key in formbuilder.yaml.
    """

    model_config = SettingsConfigDict(
        env_prefix="FORMBUILDER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Hidden field names
    csrf_field: str = "_csrf"
    method_field: str = "_method"

    # CSS classes
    input_class: str = "form-control"
    select_class: str = "form-select"
    check_class: str = "form-check-input"
    error_class: str = "is-invalid"
    feedback_class: str = "invalid-feedback"

    # Value submitted by the hidden companion of an unchecked checkbox
    unchecked_value: str = "0"


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment, .env and formbuilder.yaml."""
    # Make .env values visible to $VAR interpolation in the YAML file
    load_dotenv(Path.cwd() / ".env")
    base_settings = Settings()

    try:
        file_config = load_settings_file()
    except FileNotFoundError:
        return base_settings

    updates = {k: v for k, v in file_config.items() if k in Settings.model_fields}
    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
