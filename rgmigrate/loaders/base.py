"""Base loader interface for destination servers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from ..services.scripter import split_batches, substitute_server_name

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Result of applying one script to the destination."""
    description: str
    script: str
    executed: bool = False
    dry_run: bool = False
    batches: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "script": self.script,
            "executed": self.executed,
            "dry_run": self.dry_run,
            "batches": self.batches,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


class BaseLoader(ABC):
    """
    Base class for destination writers.

    Every mutating call goes through apply(), which rewrites the quoted
    source server name to the destination name and, in dry-run mode,
    only logs what would have been executed.
    """

    def __init__(
        self,
        destination_name: str,
        source_name: Optional[str] = None,
        dry_run: bool = False
    ):
        """
        Initialize the loader.

        Args:
            destination_name: Instance name of the destination server
            source_name: Instance name of the source server, replaced in scripts
            dry_run: If True, describe changes without making them
        """
        self.destination_name = destination_name
        self.source_name = source_name
        self.dry_run = dry_run
        self._applied: List[LoadResult] = []

    @abstractmethod
    def execute_script(self, script: str) -> int:
        """
        Execute a GO-separated script on the destination.

        Returns:
            Number of batches executed
        """
        pass

    def apply(self, script: str, description: str) -> LoadResult:
        """
        Substitute server names and execute a script.

        Args:
            script: Script text as produced by the scripter
            description: Human-readable summary used in logs

        Returns:
            LoadResult describing what happened

        Raises:
            ScriptExecutionError: If the destination rejects a batch
        """
        if self.source_name:
            script = substitute_server_name(script, self.source_name, self.destination_name)

        result = LoadResult(description=description, script=script, dry_run=self.dry_run)
        result.started_at = datetime.utcnow()

        if self.dry_run:
            result.batches = len(split_batches(script))
            logger.info(f"[DRY RUN] Would {description} on {self.destination_name}")
        else:
            logger.debug(f"Applying on {self.destination_name}: {description}")
            result.batches = self.execute_script(script)
            result.executed = True

        result.completed_at = datetime.utcnow()
        self._applied.append(result)
        return result

    def get_applied(self) -> List[LoadResult]:
        """Get every script applied (or described, in dry-run mode) so far."""
        return list(self._applied)
