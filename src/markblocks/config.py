"""Configuration helpers for the markblocks CLI."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl, ValidationError

from markblocks.storage.client import DEFAULT_BASE_URL


class StorageSettings(BaseModel):
    """Connection information for the content storage API."""

    base_url: HttpUrl = Field(DEFAULT_BASE_URL, validate_default=True, description="Base URL of the editor-home instance")
    timeout: float = Field(30.0, gt=0, description="Request timeout in seconds")


class SyncDefaults(BaseModel):
    """Default context parameters for synchronization operations."""

    content_id: Optional[str] = Field(None, description="Default content space id")
    workspace: Optional[Path] = Field(None, description="Default local workspace directory")


class MarkblocksConfig(BaseModel):
    """Aggregate configuration for the CLI."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    defaults: SyncDefaults = Field(default_factory=SyncDefaults)


ENV_PREFIX = "MARKBLOCKS"
DEFAULT_CONFIG_PATHS = (
    Path.cwd() / "markblocks.toml",
    Path.home() / ".config" / "markblocks" / "config.toml",
)


@dataclasses.dataclass
class ConfigSource:
    """Result of attempting to resolve configuration data."""

    config: Optional[MarkblocksConfig]
    path: Optional[Path]
    error: Optional[Exception]


def _load_from_env() -> dict[str, object]:
    """Return configuration values extracted from ``MARKBLOCKS_*`` variables."""

    def _get(name: str) -> Optional[str]:
        return os.getenv(f"{ENV_PREFIX}_{name}")

    storage: dict[str, str] = {}
    for key in ("BASE_URL", "TIMEOUT"):
        value = _get(key)
        if value:
            storage[key.lower()] = value

    defaults: dict[str, str] = {}
    for key in ("CONTENT_ID", "WORKSPACE"):
        value = _get(key)
        if value:
            defaults[key.lower()] = value

    if not storage and not defaults:
        return {}
    return {"storage": storage, "defaults": defaults}


def _load_toml(path: Path) -> Optional[dict]:
    if not path.exists():
        return None

    try:  # Python 3.11+
        import tomllib  # type: ignore
    except ModuleNotFoundError:  # pragma: no cover - Python <3.11 fallback
        import tomli as tomllib  # type: ignore

    with path.open("rb") as handle:
        return tomllib.load(handle)


def _read_config_file(path: Path, errors: list[Exception]) -> Optional[dict]:
    try:
        return _load_toml(path)
    except (OSError, ValueError) as exc:  # TOMLDecodeError is a ValueError
        errors.append(exc)
        return None


def resolve_config(explicit_path: Optional[Path] = None) -> ConfigSource:
    """Discover configuration from the first source that yields any data.

    Sources are consulted in this order:

    * the file passed with ``--config``, which must exist;
    * ``markblocks.toml`` in the working directory, then ``~/.config/markblocks/config.toml``;
    * ``MARKBLOCKS_*`` environment variables.

    An explicit file that is missing or malformed is reported as an error
    instead of silently falling back to the other sources.
    """

    errors: list[Exception] = []
    found: Optional[tuple[Optional[Path], dict]] = None

    if explicit_path:
        data = _read_config_file(explicit_path, errors)
        if data is not None:
            found = (explicit_path, data)
        elif not errors:
            errors.append(FileNotFoundError(f"Configuration file {explicit_path} does not exist"))
    else:
        for path in DEFAULT_CONFIG_PATHS:
            data = _read_config_file(path, errors)
            if data is not None:
                found = (path, data)
                break
        if found is None:
            env_data = _load_from_env()
            if env_data:
                found = (None, env_data)

    if found is None:
        return ConfigSource(config=None, path=None, error=errors[0] if errors else None)

    path, data = found
    try:
        return ConfigSource(config=MarkblocksConfig.model_validate(data), path=path, error=None)
    except ValidationError as exc:
        return ConfigSource(config=None, path=path, error=exc)


def ensure_config(
    *,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    content_id: Optional[str] = None,
    workspace: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> MarkblocksConfig:
    """Resolve configuration from precedence order and apply explicit CLI options."""

    source = resolve_config(config_path)

    if source.config:
        config = source.config.model_copy(deep=True)
    elif source.error is not None:
        raise RuntimeError(f"Invalid markblocks configuration: {source.error}")
    else:
        config = MarkblocksConfig()

    overrides: dict[str, object] = {}
    if base_url:
        overrides["base_url"] = base_url
    if timeout:
        overrides["timeout"] = timeout
    if overrides:
        try:
            config.storage = StorageSettings.model_validate({**config.storage.model_dump(), **overrides})
        except ValidationError as exc:
            raise RuntimeError(f"Invalid storage settings: {exc}") from exc
    if content_id:
        config.defaults.content_id = content_id
    if workspace:
        config.defaults.workspace = workspace

    return config
