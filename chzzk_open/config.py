"""Configuration management."""

import os
from pathlib import Path
from typing import Optional

import yaml

from chzzk_open.models import Config, TokenPair

ENV_OVERRIDES = {
    "CHZZK_CLIENT_ID": "client_id",
    "CHZZK_CLIENT_SECRET": "client_secret",
    "CHZZK_ACCESS_TOKEN": "access_token",
    "CHZZK_REFRESH_TOKEN": "refresh_token",
}


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file, then apply environment overrides."""
    if config_path is None:
        config_path = Path("config.yaml")

    data = {}
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[field_name] = value

    return Config(**data)


def save_tokens(config_path: Path, tokens: TokenPair) -> None:
    """Write a token pair into the YAML file, keeping other settings."""
    data = {}
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    data["access_token"] = tokens.access_token
    if tokens.refresh_token:
        data["refresh_token"] = tokens.refresh_token

    with open(config_path, "w") as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
