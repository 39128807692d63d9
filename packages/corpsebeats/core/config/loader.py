"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import SecretStr
import yaml

from corpsebeats.core.config.models import AppConfig
from corpsebeats.core.utils.logging import configure_logging as _configure_logging

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "REPLICATE_API_TOKEN"
BACKEND_URL_ENV_VAR = "CORPSEBEATS_BACKEND_URL"

_FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("corpsebeats.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()
    fmt = _FORMATS.get(suffix)
    if fmt is None:
        raise ValueError(f"Unsupported config format: {suffix}")
    return fmt


def load_config(path: str | Path) -> dict[str, Any]:
    """Read a .json, .yaml or .yml file into a plain dict.

    An empty YAML file reads as {}.

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)
    text = path.read_text(encoding="utf-8")
    try:
        content = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid {fmt.upper()} in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Config root must be a mapping: {path}")
    return content


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    A missing file means all defaults. Environment variables fill in the
    provider token and backend URL when the file leaves them unset.

    Raises:
        pydantic.ValidationError: If config is invalid
    """
    if path is None:
        path = AppConfig.default_path()

    if Path(path).exists():
        config = AppConfig.model_validate(load_config(path))
    else:
        logger.debug("No config file at %s, using defaults", path)
        config = AppConfig()

    return _load_env_vars_into_config(config)


def _load_env_vars_into_config(config: AppConfig) -> AppConfig:
    """Return a copy of config with environment values applied."""
    updates: dict[str, Any] = {}

    if config.provider.api_token is None:
        token = os.getenv(TOKEN_ENV_VAR)
        if token:
            logger.debug("Loaded %s from environment", TOKEN_ENV_VAR)
            updates["provider"] = config.provider.model_copy(
                update={"api_token": SecretStr(token)}
            )

    backend_url = os.getenv(BACKEND_URL_ENV_VAR)
    if backend_url:
        logger.debug("Loaded %s from environment", BACKEND_URL_ENV_VAR)
        # Re-validate so a malformed URL fails here rather than at first request.
        client = config.client.model_dump()
        client["backend_url"] = backend_url
        updates["client"] = type(config.client).model_validate(client)

    if updates:
        config = config.model_copy(update=updates)
    return config


def configure_logging(config: AppConfig) -> None:
    """Configure Python logging from app config."""
    _configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        structured=config.logging.structured,
    )
