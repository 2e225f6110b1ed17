"""Service layer for the migration application."""

from .scripter import GovernorScripter, split_batches, substitute_server_name
from .validator import CompatibilityValidator, CompatibilityReport
from .connection import ServerSession

__all__ = [
    "GovernorScripter",
    "split_batches",
    "substitute_server_name",
    "CompatibilityValidator",
    "CompatibilityReport",
    "ServerSession",
]
