"""Exceptions raised during a Resource Governor migration."""

from typing import Optional


class GovernorMigrationError(Exception):
    """Base class for all migration errors."""


class ConfigurationError(GovernorMigrationError):
    """Invalid or incomplete migration configuration."""


class ServerConnectionError(GovernorMigrationError):
    """A server session could not be established."""

    def __init__(self, server: str, message: str):
        super().__init__(f"Failed to connect to {server}: {message}")
        self.server = server


class UnsupportedVersionError(GovernorMigrationError):
    """A server is older than the minimum release that has Resource Governor."""

    def __init__(self, server: str, major_version: int, min_major_version: int):
        super().__init__(
            f"Resource Governor is only supported on SQL Server major version "
            f"{min_major_version} and above; {server} reports {major_version}"
        )
        self.server = server
        self.major_version = major_version
        self.min_major_version = min_major_version


class ScriptExecutionError(GovernorMigrationError):
    """A T-SQL batch failed on the server."""

    def __init__(self, server: str, batch: str, message: str, original: Optional[Exception] = None):
        super().__init__(f"Statement failed on {server}: {message}")
        self.server = server
        self.batch = batch
        self.original = original
