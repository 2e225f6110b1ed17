"""Applies Resource Governor DDL to a destination SQL Server."""

import logging
from typing import Optional

from .base import BaseLoader, LoadResult
from ..models.governor import (
    ClassifierFunction,
    GovernorSettings,
    ResourcePool,
    WorkloadGroup,
)
from ..services.connection import ServerSession
from ..services.scripter import GovernorScripter, join_batches, quote_name, split_batches

logger = logging.getLogger(__name__)


class GovernorLoader(BaseLoader):
    """
    Loader that writes Resource Governor objects through a ServerSession.

    Scripts are generated for the destination's major version. When the
    destination edition does not support Resource Governor, RECONFIGURE is
    left out of every script and only the metadata is written.
    """

    def __init__(
        self,
        session: ServerSession,
        source_name: Optional[str] = None,
        dry_run: bool = False,
        scripter: Optional[GovernorScripter] = None,
        full_support: bool = True
    ):
        super().__init__(session.name, source_name, dry_run)
        self.session = session
        self.full_support = full_support
        self.scripter = scripter or GovernorScripter(
            target_major_version=session.info.major_version
        )

    def execute_script(self, script: str) -> int:
        return self.session.execute_script(script)

    def _can_reconfigure(self, description: str) -> bool:
        if not self.full_support:
            logger.warning(
                f"RECONFIGURE left out of '{description}' because {self.destination_name} "
                "does not support Resource Governor in this edition"
            )
        return self.full_support

    def apply_settings(self, settings: GovernorSettings, script: Optional[str] = None) -> LoadResult:
        """Apply server-wide settings, optionally from an already scripted text."""
        description = "update Resource Governor settings"
        if script is None:
            reconfigure = not settings.is_enabled or self._can_reconfigure(description)
            script = self.scripter.script_settings(settings, reconfigure=reconfigure)
        return self.apply(script, description)

    def create_classifier(self, classifier: ClassifierFunction) -> LoadResult:
        return self.apply(
            self.scripter.script_classifier(classifier),
            f"create classifier function {classifier.qualified_name}",
        )

    def drop_classifier(self, classifier: ClassifierFunction) -> LoadResult:
        description = f"drop classifier function {classifier.qualified_name}"
        return self.apply(
            self.scripter.script_drop_classifier(
                classifier, reconfigure=self._can_reconfigure(description)
            ),
            description,
        )

    def drop_pool(self, pool: ResourcePool) -> LoadResult:
        """
        Drop a pool from the destination.

        Its workload groups are dropped first, then the pool, then the
        change is applied with RECONFIGURE where the edition allows it.
        """
        description = (
            f"drop resource pool {quote_name(pool.name)} "
            f"and its {len(pool.workload_groups)} workload group(s)"
        )
        batches = []
        for group in pool.workload_groups:
            batches.extend(split_batches(self.scripter.script_drop_workload_group(group)))
        batches.extend(split_batches(self.scripter.script_drop_pool(pool)))
        if self._can_reconfigure(description):
            batches.extend(split_batches(self.scripter.script_reconfigure()))

        return self.apply(join_batches(batches), description)

    def create_pool(self, pool: ResourcePool) -> LoadResult:
        return self.apply(
            self.scripter.script_pool(pool),
            f"create resource pool {quote_name(pool.name)}",
        )

    def create_workload_group(self, group: WorkloadGroup) -> LoadResult:
        return self.apply(
            self.scripter.script_workload_group(group),
            f"create workload group {quote_name(group.name)} in pool {quote_name(group.pool_name)}",
        )

    def reconfigure(self) -> LoadResult:
        return self.apply(self.scripter.script_reconfigure(), "reconfigure Resource Governor")
