"""T-SQL scripting for Resource Governor objects."""

import re
import logging
from typing import List, Optional

from ..models.governor import (
    ClassifierFunction,
    GovernorSettings,
    ResourcePool,
    WorkloadGroup,
    quote_name,
)

logger = logging.getLogger(__name__)

BATCH_SEPARATOR = "GO"

# First major version that understands each option
CAP_CPU_PERCENT_VERSION = 11  # 2012
IOPS_VERSION = 12  # 2014

_GO_LINE = re.compile(r"^\s*GO\s*(?:--.*)?$", re.IGNORECASE | re.MULTILINE)


def substitute_server_name(script: str, source: str, destination: str) -> str:
    """
    Replace the quoted source server name with the destination name.

    Only occurrences wrapped in single quotes are replaced, matching
    case-insensitively as SQL Server compares instance names.
    """
    if not source or source == destination:
        return script
    pattern = re.compile(re.escape(f"'{source}'"), re.IGNORECASE)
    replacement = f"'{destination}'"
    return pattern.sub(lambda _: replacement, script)


def split_batches(script: str) -> List[str]:
    """Split a script on GO separator lines, dropping empty batches."""
    batches = []
    for chunk in _GO_LINE.split(script):
        chunk = chunk.strip()
        if chunk:
            batches.append(chunk)
    return batches


def join_batches(batches: List[str]) -> str:
    return "".join(f"{b.strip()}\n{BATCH_SEPARATOR}\n" for b in batches if b.strip())


class GovernorScripter:
    """
    Generates DDL for Resource Governor objects.

    Options newer than the target server are left out so a script taken
    from a newer instance still runs on an older destination.
    """

    def __init__(self, target_major_version: Optional[int] = None):
        """
        Initialize the scripter.

        Args:
            target_major_version: Major version the script must run on; None scripts every option
        """
        self.target_major_version = target_major_version

    def _supports(self, major_version: int) -> bool:
        return self.target_major_version is None or self.target_major_version >= major_version

    def script_settings(self, settings: GovernorSettings, reconfigure: bool = True) -> str:
        """
        Script the server-wide Resource Governor configuration.

        Args:
            settings: Settings read from the source
            reconfigure: Whether an enabled configuration is activated with RECONFIGURE
        """
        batches = []

        if settings.classifier:
            batches.append(
                "ALTER RESOURCE GOVERNOR WITH "
                f"(CLASSIFIER_FUNCTION = {settings.classifier.qualified_name})"
            )
        else:
            batches.append("ALTER RESOURCE GOVERNOR WITH (CLASSIFIER_FUNCTION = NULL)")

        if settings.max_outstanding_io_per_volume is not None and self._supports(IOPS_VERSION):
            batches.append(
                "ALTER RESOURCE GOVERNOR WITH "
                f"(MAX_OUTSTANDING_IO_PER_VOLUME = {settings.max_outstanding_io_per_volume})"
            )

        if settings.is_enabled:
            if reconfigure:
                batches.append("ALTER RESOURCE GOVERNOR RECONFIGURE")
        else:
            batches.append("ALTER RESOURCE GOVERNOR DISABLE")

        return join_batches(batches)

    def script_classifier(self, classifier: ClassifierFunction) -> str:
        """Script the CREATE FUNCTION statement of a classifier function."""
        if not classifier.definition.strip():
            raise ValueError(f"No definition available for classifier {classifier.qualified_name}")
        return join_batches([classifier.definition])

    def script_drop_classifier(self, classifier: ClassifierFunction, reconfigure: bool = True) -> str:
        """Detach and drop a classifier function."""
        batches = ["ALTER RESOURCE GOVERNOR WITH (CLASSIFIER_FUNCTION = NULL)"]
        if reconfigure:
            batches.append("ALTER RESOURCE GOVERNOR RECONFIGURE")
        batches.append(f"DROP FUNCTION {classifier.qualified_name}")
        return join_batches(batches)

    def script_pool(self, pool: ResourcePool) -> str:
        """Script CREATE RESOURCE POOL."""
        options = [
            f"MIN_CPU_PERCENT = {pool.min_cpu_percent}",
            f"MAX_CPU_PERCENT = {pool.max_cpu_percent}",
            f"MIN_MEMORY_PERCENT = {pool.min_memory_percent}",
            f"MAX_MEMORY_PERCENT = {pool.max_memory_percent}",
        ]
        if pool.cap_cpu_percent is not None and self._supports(CAP_CPU_PERCENT_VERSION):
            options.append(f"CAP_CPU_PERCENT = {pool.cap_cpu_percent}")
        if self._supports(IOPS_VERSION):
            if pool.min_iops_per_volume is not None:
                options.append(f"MIN_IOPS_PER_VOLUME = {pool.min_iops_per_volume}")
            if pool.max_iops_per_volume is not None:
                options.append(f"MAX_IOPS_PER_VOLUME = {pool.max_iops_per_volume}")

        return join_batches([
            f"CREATE RESOURCE POOL {quote_name(pool.name)} WITH ({', '.join(options)})"
        ])

    def script_workload_group(self, group: WorkloadGroup) -> str:
        """Script CREATE WORKLOAD GROUP bound to its pool."""
        options = [
            f"IMPORTANCE = {group.importance.upper()}",
            f"REQUEST_MAX_MEMORY_GRANT_PERCENT = {group.request_max_memory_grant_percent}",
            f"REQUEST_MAX_CPU_TIME_SEC = {group.request_max_cpu_time_sec}",
            f"REQUEST_MEMORY_GRANT_TIMEOUT_SEC = {group.request_memory_grant_timeout_sec}",
            f"MAX_DOP = {group.max_dop}",
            f"GROUP_MAX_REQUESTS = {group.group_max_requests}",
        ]
        return join_batches([
            f"CREATE WORKLOAD GROUP {quote_name(group.name)} WITH ({', '.join(options)}) "
            f"USING {quote_name(group.pool_name)}"
        ])

    def script_drop_workload_group(self, group: WorkloadGroup) -> str:
        return join_batches([f"DROP WORKLOAD GROUP {quote_name(group.name)}"])

    def script_drop_pool(self, pool: ResourcePool) -> str:
        return join_batches([f"DROP RESOURCE POOL {quote_name(pool.name)}"])

    def script_reconfigure(self) -> str:
        return join_batches(["ALTER RESOURCE GOVERNOR RECONFIGURE"])

    def script_all(
        self,
        settings: Optional[GovernorSettings],
        pools: List[ResourcePool],
        include_classifier: bool = True
    ) -> str:
        """
        Script a complete configuration in the order it has to be applied.

        Args:
            settings: Server-wide settings, or None to leave them out
            pools: Pools to script, each followed by its workload groups
            include_classifier: Whether to script the classifier function body

        Returns:
            GO-separated script text
        """
        parts = []

        if settings is not None:
            if include_classifier and settings.classifier and settings.classifier.definition:
                parts.append(f"-- Classifier function {settings.classifier.qualified_name}")
                parts.append(self.script_classifier(settings.classifier))
            parts.append("-- Resource Governor settings")
            parts.append(self.script_settings(settings))

        for pool in pools:
            parts.append(f"-- Resource pool {quote_name(pool.name)}")
            parts.append(self.script_pool(pool))
            for group in pool.workload_groups:
                parts.append(self.script_workload_group(group))

        parts.append(self.script_reconfigure())
        return "\n".join(parts)
