"""Data models for the migration application."""

from .governor import (
    ServerInfo,
    ClassifierFunction,
    GovernorSettings,
    WorkloadGroup,
    ResourcePool,
)
from .migration import (
    MigrationConfig,
    MigrationRun,
    MigrationStep,
    MigrationStatus,
    StepStatus,
    ObjectType,
    ServerConnection,
)

__all__ = [
    "ServerInfo",
    "ClassifierFunction",
    "GovernorSettings",
    "WorkloadGroup",
    "ResourcePool",
    "MigrationConfig",
    "MigrationRun",
    "MigrationStep",
    "MigrationStatus",
    "StepStatus",
    "ObjectType",
    "ServerConnection",
]
