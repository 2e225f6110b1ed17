"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from ..models.governor import GovernorSettings, ResourcePool, ServerInfo

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Everything read from a server's Resource Governor in one pass."""
    server: ServerInfo
    settings: Optional[GovernorSettings] = None
    pools: List[ResourcePool] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "server": self.server.to_dict(),
            "settings": self.settings.to_dict() if self.settings else None,
            "pools": [p.to_dict() for p in self.pools],
            "warnings": self.warnings,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


class BaseExtractor(ABC):
    """
    Base class for Resource Governor readers.

    Extractors only read. Every call goes to the server, so the answer
    reflects the configuration at that moment.
    """

    @property
    @abstractmethod
    def server(self) -> ServerInfo:
        """Identity of the server being read."""
        pass

    @abstractmethod
    def get_settings(self) -> GovernorSettings:
        """Read server-wide Resource Governor settings."""
        pass

    @abstractmethod
    def get_pools(self) -> List[ResourcePool]:
        """Read every resource pool with its workload groups, reserved pools included."""
        pass

    @abstractmethod
    def classifier_exists(self, schema: str, name: str) -> bool:
        """Check whether a function with this name exists in master."""
        pass

    def get_pool(self, name: str) -> Optional[ResourcePool]:
        """Read a single pool by name (case-insensitive)."""
        for pool in self.get_pools():
            if pool.name.lower() == name.lower():
                return pool
        return None

    def extract(self) -> ExtractionResult:
        """
        Read settings and pools in one pass.

        Returns:
            ExtractionResult with the server's full configuration
        """
        result = ExtractionResult(server=self.server)
        result.started_at = datetime.utcnow()
        result.settings = self.get_settings()
        result.pools = self.get_pools()
        result.completed_at = datetime.utcnow()
        logger.info(
            f"Read {len(result.pools)} resource pools and "
            f"{sum(len(p.workload_groups) for p in result.pools)} workload groups "
            f"from {result.server.name}"
        )
        return result
