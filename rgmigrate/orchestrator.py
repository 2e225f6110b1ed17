"""Migration orchestrator - coordinates a complete Resource Governor copy."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from .exceptions import ConfigurationError
from .models.governor import ClassifierFunction, ResourcePool, WorkloadGroup
from .models.migration import (
    MigrationConfig,
    MigrationRun,
    MigrationStatus,
    MigrationStep,
    ObjectType,
    ServerConnection,
    StepStatus,
)
from .services.connection import ServerSession
from .services.scripter import GovernorScripter, quote_name, substitute_server_name
from .services.validator import CompatibilityReport, CompatibilityValidator
from .extractors.base import BaseExtractor
from .extractors.governor_extractor import GovernorExtractor
from .loaders.base import LoadResult
from .loaders.governor_loader import GovernorLoader

logger = logging.getLogger(__name__)

SessionFactory = Callable[[ServerConnection], ServerSession]


class MigrationOrchestrator:
    """
    Orchestrates a Resource Governor migration.

    Handles:
    - Connecting to source and destination
    - Version gate (fatal) and edition check (warning)
    - Classifier function and server-wide settings
    - Resource pools and their workload groups, with skip/force handling
    - Final RECONFIGURE
    - Progress tracking and reporting

    Everything runs sequentially on the two sessions. Failures on a single
    object are recorded on its step and the run moves on; only connection
    and version-gate failures abort the run.
    """

    def __init__(
        self,
        config: MigrationConfig,
        source_session: Optional[ServerSession] = None,
        destination_session: Optional[ServerSession] = None,
        session_factory: Optional[SessionFactory] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            source_session: Already open source session (not closed by the orchestrator)
            destination_session: Already open destination session (not closed by the orchestrator)
            session_factory: Opens sessions that were not passed in; defaults to ServerSession.connect
        """
        self.config = config
        self.validator = CompatibilityValidator(
            min_major_version=config.min_major_version,
            full_support_editions=config.full_support_editions,
        )
        self._session_factory = session_factory or ServerSession.connect
        self._source_session = source_session
        self._destination_session = destination_session
        self._owned_sessions: List[ServerSession] = []

        # Runtime state
        self.run: Optional[MigrationRun] = None
        self.compatibility: Optional[CompatibilityReport] = None
        self.source: Optional[BaseExtractor] = None
        self.destination: Optional[BaseExtractor] = None
        self.loader: Optional[GovernorLoader] = None

    # Sessions

    def _open(self, settings: ServerConnection) -> ServerSession:
        if not settings.server:
            raise ConfigurationError("Server name is required")
        session = self._session_factory(settings)
        self._owned_sessions.append(session)
        return session

    @property
    def source_session(self) -> ServerSession:
        if self._source_session is None:
            self._source_session = self._open(self.config.source)
        return self._source_session

    @property
    def destination_session(self) -> ServerSession:
        if self._destination_session is None:
            self._destination_session = self._open(self.config.destination)
        return self._destination_session

    def connect(self) -> None:
        """Open both sessions and build the readers and the loader."""
        source = self.source_session
        destination = self.destination_session
        self.source = GovernorExtractor(source)
        self.destination = GovernorExtractor(destination)
        self.loader = GovernorLoader(
            destination,
            source_name=source.name,
            dry_run=self.config.dry_run,
        )

    def close(self) -> None:
        """Close sessions this orchestrator opened."""
        for session in self._owned_sessions:
            session.close()
        self._owned_sessions = []

    # Workflow

    def check_compatibility(self) -> CompatibilityReport:
        """
        Run the version/edition gate.

        Raises:
            UnsupportedVersionError: If either server is below the minimum version
        """
        self.compatibility = self.validator.validate(
            self.source_session.info,
            self.destination_session.info,
        )
        return self.compatibility

    def run_migration(self) -> MigrationRun:
        """
        Run the complete migration.

        Returns:
            MigrationRun with a step per object and the overall status
        """
        self.run = MigrationRun(
            source=self.config.source.server,
            destination=self.config.destination.server,
            dry_run=self.config.dry_run,
            force=self.config.force,
        )
        self.run.started_at = datetime.utcnow()
        self.run.status = MigrationStatus.CHECKING

        try:
            logger.info("=== CHECKING SERVERS ===")
            self.connect()
            report = self.check_compatibility()
            self.run.source = self.source_session.name
            self.run.destination = self.destination_session.name
            self.run.metadata["compatibility"] = report.to_dict()
            self.run.warnings.extend(report.warnings)
            self.loader.full_support = report.destination_full_support

            logger.info("=== COPYING RESOURCE GOVERNOR SETTINGS ===")
            self.run.status = MigrationStatus.COPYING_SETTINGS
            self._copy_settings()

            logger.info("=== COPYING RESOURCE POOLS ===")
            self.run.status = MigrationStatus.COPYING_POOLS
            self._copy_pools()

            logger.info("=== RECONFIGURING ===")
            self.run.status = MigrationStatus.RECONFIGURING
            self._reconfigure()

            self.run.status = MigrationStatus.COMPLETED
            logger.info("=== MIGRATION COMPLETED ===")

        except Exception as e:
            logger.error(f"Migration failed: {e}")
            self.run.errors.append({
                "phase": self.run.status.value,
                "error": str(e),
                "type": type(e).__name__,
                "timestamp": datetime.utcnow().isoformat(),
            })
            self.run.status = MigrationStatus.FAILED

        finally:
            self.run.completed_at = datetime.utcnow()
            self.run.update_totals()
            if self.loader:
                self.run.metadata["applied"] = [r.to_dict() for r in self.loader.get_applied()]
            self._save_report()
            self.close()

        return self.run

    def select_pools(self, pools: List[ResourcePool]) -> List[ResourcePool]:
        """
        Apply include, exclude and reserved-name filters.

        Reserved pools are never selected, even when named explicitly.
        """
        reserved = {name.lower() for name in self.config.reserved_pools}
        excluded = {name.lower() for name in self.config.exclude_pools}

        if self.config.pools:
            wanted = {name.lower() for name in self.config.pools}
            found = {p.name.lower() for p in pools}
            for name in self.config.pools:
                if name.lower() not in found:
                    message = f"Resource pool '{name}' does not exist on the source"
                    logger.warning(message)
                    if self.run:
                        self.run.warnings.append(message)
            candidates = [p for p in pools if p.name.lower() in wanted]
        else:
            candidates = list(pools)

        selected = []
        for pool in candidates:
            if pool.name.lower() in reserved:
                logger.debug(f"Skipping reserved pool '{pool.name}'")
                continue
            if pool.name.lower() in excluded:
                logger.info(f"Excluding pool '{pool.name}'")
                continue
            selected.append(pool)
        return selected

    def _start_step(self, object_type: ObjectType, name: str) -> MigrationStep:
        step = self.run.add_step(object_type, name)
        step.started_at = datetime.utcnow()
        return step

    def _complete_step(self, step: MigrationStep, result: LoadResult) -> None:
        step.status = StepStatus.DRY_RUN if result.dry_run else StepStatus.SUCCESSFUL
        step.notes = f"Would {result.description}" if result.dry_run else result.description

    def _skip_step(self, step: MigrationStep, reason: str) -> None:
        step.skip(reason)
        logger.warning(reason)

    def _fail_step(self, step: MigrationStep, error: Exception, action: str) -> None:
        step.fail(error)
        logger.error(f"Failed to {action}: {error}")

    def _copy_settings(self) -> None:
        """Copy the classifier function and the server-wide settings."""
        try:
            settings = self.source.get_settings()
        except Exception as e:
            step = self._start_step(ObjectType.SETTINGS, "Resource Governor")
            self._fail_step(step, e, "read Resource Governor settings")
            step.completed_at = datetime.utcnow()
            return

        if not settings.is_enabled and self.loader.full_support:
            message = (
                f"Resource Governor is disabled on {self.source.server.name} but the final "
                f"RECONFIGURE will enable it on {self.loader.destination_name}"
            )
            logger.warning(message)
            self.run.warnings.append(message)

        # Settings reference the classifier, so it has to exist first
        if self.config.copy_classifier and settings.classifier:
            self._copy_classifier(settings.classifier)

        step = self._start_step(ObjectType.SETTINGS, "Resource Governor")
        try:
            logger.info(f"Copying Resource Governor settings to {self.loader.destination_name}")
            result = self.loader.apply_settings(settings)
            self._complete_step(step, result)
        except Exception as e:
            self._fail_step(step, e, "update Resource Governor settings")
        finally:
            step.completed_at = datetime.utcnow()

    def _copy_classifier(self, classifier: ClassifierFunction) -> MigrationStep:
        step = self._start_step(ObjectType.CLASSIFIER, classifier.qualified_name)
        try:
            if not classifier.definition:
                self._skip_step(
                    step,
                    f"Classifier function {classifier.qualified_name} was skipped because "
                    "its definition could not be read on the source.",
                )
                return step

            if self.destination.classifier_exists(classifier.schema, classifier.name):
                if not self.config.force:
                    self._skip_step(
                        step,
                        f"Classifier function {classifier.qualified_name} was skipped because it "
                        f"already exists on {self.loader.destination_name}. "
                        "Use --force to drop and recreate.",
                    )
                    return step
                logger.info(f"Dropping classifier function {classifier.qualified_name}")
                self.loader.drop_classifier(classifier)

            logger.info(f"Copying classifier function {classifier.qualified_name}")
            result = self.loader.create_classifier(classifier)
            self._complete_step(step, result)
        except Exception as e:
            self._fail_step(step, e, f"copy classifier function {classifier.qualified_name}")
        finally:
            step.completed_at = datetime.utcnow()
        return step

    def _copy_pools(self) -> None:
        pools = self.select_pools(self.source.get_pools())
        if not pools:
            logger.info("No resource pools selected for copy")
            return
        for pool in pools:
            self._copy_pool(pool)

    def _copy_pool(self, pool: ResourcePool) -> None:
        """Copy one pool; its groups are only attempted if the pool was created."""
        step = self._start_step(ObjectType.POOL, pool.name)
        created = False
        try:
            existing = self.destination.get_pool(pool.name)
            if existing is not None:
                if not self.config.force:
                    self._skip_step(
                        step,
                        f"Pool '{pool.name}' was skipped because it already exists on "
                        f"{self.loader.destination_name}. Use --force to drop and recreate.",
                    )
                    return

                logger.info(f"Pool '{pool.name}' exists on {self.loader.destination_name}; dropping it")
                try:
                    self.loader.drop_pool(existing)
                except Exception as e:
                    self._fail_step(step, e, f"drop resource pool {quote_name(pool.name)}")
                    return

            logger.info(f"Copying pool '{pool.name}'")
            result = self.loader.create_pool(pool)
            self._complete_step(step, result)
            created = True
        except Exception as e:
            self._fail_step(step, e, f"copy resource pool {quote_name(pool.name)}")
        finally:
            step.completed_at = datetime.utcnow()

        if created:
            for group in pool.workload_groups:
                self._copy_workload_group(group)

    def _copy_workload_group(self, group: WorkloadGroup) -> None:
        step = self._start_step(ObjectType.WORKLOAD_GROUP, group.name)
        try:
            logger.info(f"Copying workload group '{group.name}' in pool '{group.pool_name}'")
            result = self.loader.create_workload_group(group)
            self._complete_step(step, result)
        except Exception as e:
            self._fail_step(step, e, f"copy workload group {quote_name(group.name)}")
        finally:
            step.completed_at = datetime.utcnow()

    def _reconfigure(self) -> None:
        step = self._start_step(ObjectType.RECONFIGURE, "Resource Governor")
        try:
            if self.compatibility and not self.compatibility.destination_full_support:
                self._skip_step(
                    step,
                    f"Resource Governor was not reconfigured because "
                    f"{self.loader.destination_name} does not support it in this edition.",
                )
                return
            result = self.loader.reconfigure()
            self._complete_step(step, result)
        except Exception as e:
            self._fail_step(step, e, "reconfigure Resource Governor")
        finally:
            step.completed_at = datetime.utcnow()

    def _save_report(self) -> None:
        """Save the migration report when an output directory is configured."""
        if not self.config.output_dir:
            return
        try:
            output = Path(self.config.output_dir)
            output.mkdir(parents=True, exist_ok=True)
            filepath = output / f"rg_migration_report_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.json"
            with open(filepath, 'w') as f:
                json.dump(self.run.to_dict(), f, indent=2, default=str)
            logger.info(f"Saved migration report to {filepath}")
        except OSError as e:
            logger.error(f"Could not save migration report: {e}")

    # Script-only mode

    def script_source(
        self,
        destination_name: Optional[str] = None,
        target_major_version: Optional[int] = None,
        include_settings: bool = True
    ) -> str:
        """
        Script the selected source configuration without touching a destination.

        Args:
            destination_name: If given, quoted source names are replaced with it
            target_major_version: Leave out options the target version lacks
            include_settings: Whether to include the classifier and settings

        Returns:
            GO-separated script text
        """
        try:
            session = self.source_session
            extracted = GovernorExtractor(session).extract()
            settings = extracted.settings if include_settings else None
            pools = self.select_pools(extracted.pools)

            scripter = GovernorScripter(target_major_version=target_major_version)
            script = scripter.script_all(
                settings,
                pools,
                include_classifier=self.config.copy_classifier,
            )
            if destination_name:
                script = substitute_server_name(script, session.name, destination_name)
            return script
        finally:
            self.close()
