"""
Configuration loader for commitsmith.

The tool expects a JSON configuration file named ``config.json`` in the
``~/.commitsmith/`` directory. This loader validates the structure of the
configuration and returns a :class:`GeneratorConfig` describing how to
reach the text-generation server. Two environment variables override
values from the file: ``COMMITSMITH_MODEL`` and ``COMMITSMITH_API_KEY``.

If the configuration file is missing, malformed, missing required keys
or has fields of the wrong type, a :class:`ConfigError` is raised.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from commitsmith.errors import CommitsmithError
from commitsmith.llm.prompt_builder import DEFAULT_MAX_REQUEST_SIZE


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_DIRECTORY_NAME = ".commitsmith"
CONFIG_FILE_NAME = "config.json"
MODEL_ENV_VAR = "COMMITSMITH_MODEL"
API_KEY_ENV_VAR = "COMMITSMITH_API_KEY"


class ConfigError(CommitsmithError):
    """Raised when the configuration file is missing or invalid."""

    pass


@dataclass(frozen=True)
class GeneratorConfig:
    """Validated settings for the text-generation server."""

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None
    api_key: Optional[str] = None
    max_request_size: int = DEFAULT_MAX_REQUEST_SIZE


def get_config_path(home: Optional[Path] = None) -> Path:
    """Return ``~/.commitsmith/config.json``."""
    return (home or Path.home()) / CONFIG_DIRECTORY_NAME / CONFIG_FILE_NAME


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_config(data: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> GeneratorConfig:
    """Validate raw configuration data and apply environment overrides."""
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a JSON object")

    required_keys = ["base_url", "port", "model"]
    missing = [key for key in required_keys if key not in data]
    if missing:
        logger.error("Configuration file missing required keys: %s", missing)
        raise ConfigError(f"Missing required configuration keys: {', '.join(missing)}")

    if not isinstance(data["base_url"], str):
        raise ConfigError("'base_url' must be a string")
    if not _is_int(data["port"]):
        raise ConfigError("'port' must be an integer")
    if not isinstance(data["model"], str):
        raise ConfigError("'model' must be a string")

    timeout = data.get("request_timeout", 60.0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("'request_timeout' must be a positive number")
    if "max_tokens" in data and data["max_tokens"] is not None and not _is_int(data["max_tokens"]):
        raise ConfigError("'max_tokens' must be an integer")
    if "api_key" in data and data["api_key"] is not None and not isinstance(data["api_key"], str):
        raise ConfigError("'api_key' must be a string")
    max_request_size = data.get("max_request_size", DEFAULT_MAX_REQUEST_SIZE)
    if not _is_int(max_request_size) or max_request_size <= 0:
        raise ConfigError("'max_request_size' must be a positive integer")

    environ = os.environ if environ is None else environ
    model = environ.get(MODEL_ENV_VAR) or data["model"]
    api_key = environ.get(API_KEY_ENV_VAR) or data.get("api_key")

    return GeneratorConfig(
        base_url=data["base_url"],
        port=data["port"],
        model=model,
        request_timeout=float(timeout),
        max_tokens=data.get("max_tokens"),
        api_key=api_key,
        max_request_size=max_request_size,
    )


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GeneratorConfig:
    """Load and validate the configuration file.

    Parameters
    ----------
    config_path : Path, optional
        Explicit location of the file; defaults to :func:`get_config_path`.
    environ : Mapping[str, str], optional
        Environment used for overrides; defaults to ``os.environ``.

    Returns
    -------
    GeneratorConfig
        The validated configuration.

    Raises
    ------
    ConfigError
        If the file is missing, malformed or invalid.
    """
    path = config_path or get_config_path()
    if not path.exists():
        logger.error("Configuration file '%s' does not exist", path)
        raise ConfigError(
            f"Missing configuration file: {path}. Create it with at least "
            f"'base_url', 'port' and 'model'."
        )
    try:
        data: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {path.name}: {exc}") from exc

    config = parse_config(data, environ)
    logger.debug("Loaded configuration from %s (model %s)", path, config.model)
    return config
