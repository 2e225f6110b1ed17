"""Reads Resource Governor configuration from SQL Server catalog views."""

import logging
from typing import Any, Dict, List, Optional

from .base import BaseExtractor
from ..models.governor import (
    ClassifierFunction,
    GovernorSettings,
    ResourcePool,
    ServerInfo,
    WorkloadGroup,
)
from ..services.connection import ServerSession
from ..services.scripter import quote_name

logger = logging.getLogger(__name__)

SETTINGS_QUERY = """
SELECT
    c.*,
    OBJECT_SCHEMA_NAME(c.classifier_function_id) AS classifier_schema,
    OBJECT_NAME(c.classifier_function_id) AS classifier_name,
    OBJECT_DEFINITION(c.classifier_function_id) AS classifier_definition
FROM sys.resource_governor_configuration AS c
"""

POOLS_QUERY = """
SELECT p.*
FROM sys.resource_governor_resource_pools AS p
ORDER BY p.pool_id
"""

GROUPS_QUERY = """
SELECT g.*, p.name AS pool_name
FROM sys.resource_governor_workload_groups AS g
JOIN sys.resource_governor_resource_pools AS p ON p.pool_id = g.pool_id
ORDER BY g.group_id
"""

OBJECT_EXISTS_QUERY = "SELECT OBJECT_ID(?) AS object_id"


def _int(row: Dict[str, Any], column: str, default: Optional[int] = None) -> Optional[int]:
    """Read an integer column that may be absent on older versions."""
    value = row.get(column)
    if value is None:
        return default
    return int(value)


class GovernorExtractor(BaseExtractor):
    """
    Extractor backed by the sys.resource_governor_* catalog views.

    Columns that only exist on newer releases (CAP_CPU_PERCENT, IOPS
    limits, MAX_OUTSTANDING_IO_PER_VOLUME) are read when present and left
    as None otherwise.
    """

    def __init__(self, session: ServerSession):
        self.session = session

    @property
    def server(self) -> ServerInfo:
        return self.session.info

    def get_settings(self) -> GovernorSettings:
        row = self.session.query_one(SETTINGS_QUERY)
        if not row:
            return GovernorSettings()

        classifier = None
        if row.get("classifier_function_id") and row.get("classifier_name"):
            classifier = ClassifierFunction(
                schema=row.get("classifier_schema") or "dbo",
                name=row["classifier_name"],
                definition=row.get("classifier_definition") or "",
            )
            if not classifier.definition:
                logger.warning(
                    f"Definition of classifier {classifier.qualified_name} on "
                    f"{self.server.name} is not readable (encrypted or no permission)"
                )

        return GovernorSettings(
            is_enabled=bool(row.get("is_enabled")),
            classifier=classifier,
            max_outstanding_io_per_volume=_int(row, "max_outstanding_io_per_volume"),
        )

    def get_pools(self) -> List[ResourcePool]:
        pools: Dict[int, ResourcePool] = {}
        for row in self.session.query(POOLS_QUERY):
            pool = ResourcePool(
                pool_id=_int(row, "pool_id"),
                name=row["name"],
                min_cpu_percent=_int(row, "min_cpu_percent", 0),
                max_cpu_percent=_int(row, "max_cpu_percent", 100),
                min_memory_percent=_int(row, "min_memory_percent", 0),
                max_memory_percent=_int(row, "max_memory_percent", 100),
                cap_cpu_percent=_int(row, "cap_cpu_percent"),
                min_iops_per_volume=_int(row, "min_iops_per_volume"),
                max_iops_per_volume=_int(row, "max_iops_per_volume"),
            )
            pools[pool.pool_id] = pool

        for row in self.session.query(GROUPS_QUERY):
            pool = pools.get(_int(row, "pool_id"))
            if pool is None:
                continue
            pool.workload_groups.append(WorkloadGroup(
                group_id=_int(row, "group_id"),
                name=row["name"],
                pool_name=row["pool_name"],
                importance=(row.get("importance") or "MEDIUM").upper(),
                request_max_memory_grant_percent=_int(row, "request_max_memory_grant_percent", 25),
                request_max_cpu_time_sec=_int(row, "request_max_cpu_time_sec", 0),
                request_memory_grant_timeout_sec=_int(row, "request_memory_grant_timeout_sec", 0),
                max_dop=_int(row, "max_dop", 0),
                group_max_requests=_int(row, "group_max_requests", 0),
            ))

        return list(pools.values())

    def classifier_exists(self, schema: str, name: str) -> bool:
        qualified = f"{quote_name(schema)}.{quote_name(name)}"
        row = self.session.query_one(OBJECT_EXISTS_QUERY, qualified)
        return bool(row and row.get("object_id"))
