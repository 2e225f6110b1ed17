"""Loading and validation of migration configuration."""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError
from .models.migration import (
    DEFAULT_DRIVER,
    DEFAULT_FULL_SUPPORT_EDITIONS,
    DEFAULT_RESERVED_POOLS,
    MIN_SUPPORTED_MAJOR_VERSION,
    MigrationConfig,
)

logger = logging.getLogger(__name__)

SOURCE_PASSWORD_ENV = "RGMIGRATE_SOURCE_PASSWORD"
DESTINATION_PASSWORD_ENV = "RGMIGRATE_DESTINATION_PASSWORD"


class ConnectionSettings(BaseModel):
    server: str = Field(min_length=1)
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "master"
    driver: str = DEFAULT_DRIVER
    trust_server_certificate: bool = False
    encrypt: Optional[bool] = None
    timeout: int = Field(default=30, gt=0)


class MigrationFile(BaseModel):
    source: ConnectionSettings
    destination: Optional[ConnectionSettings] = None
    pools: List[str] = Field(default_factory=list)
    exclude_pools: List[str] = Field(default_factory=list)
    reserved_pools: List[str] = Field(default_factory=lambda: list(DEFAULT_RESERVED_POOLS))
    force: bool = False
    dry_run: bool = False
    copy_classifier: bool = True
    min_major_version: int = Field(default=MIN_SUPPORTED_MAJOR_VERSION, ge=1)
    full_support_editions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_FULL_SUPPORT_EDITIONS)
    )
    output_dir: Optional[str] = None

    def to_config(self) -> MigrationConfig:
        return MigrationConfig.from_dict(self.model_dump())


def read_config_file(path: str) -> Dict[str, Any]:
    """Read a JSON config file into a dictionary."""
    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def merge_overrides(data: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay non-None override values onto config data.

    Nested dictionaries (source, destination) are merged key by key.
    """
    merged = dict(data)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict):
            given = {k: v for k, v in value.items() if v is not None}
            if not given:
                continue
            nested = dict(merged.get(key) or {})
            nested.update(given)
            merged[key] = nested
        else:
            merged[key] = value
    return merged


def apply_env_passwords(config: MigrationConfig) -> MigrationConfig:
    """Fill in missing passwords for SQL logins from the environment."""
    for connection, env_var in (
        (config.source, SOURCE_PASSWORD_ENV),
        (config.destination, DESTINATION_PASSWORD_ENV),
    ):
        if connection.user and connection.password is None:
            connection.password = os.environ.get(env_var)
            if connection.password is None:
                logger.warning(
                    f"No password given for login {connection.user} on {connection.server}; "
                    f"set {env_var} or pass it explicitly"
                )
    return config


def build_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    require_destination: bool = True
) -> MigrationConfig:
    """
    Build a validated MigrationConfig.

    Args:
        config_path: Optional JSON config file
        overrides: Values taken from the command line; None values are ignored
        require_destination: Whether a destination server must be configured

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    data = read_config_file(config_path) if config_path else {}
    data = merge_overrides(data, overrides or {})

    try:
        parsed = MigrationFile.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e

    if require_destination and parsed.destination is None:
        raise ConfigurationError("Invalid configuration: destination: Field required")

    return apply_env_passwords(parsed.to_config())
