"""Version and edition checks for Resource Governor support."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import UnsupportedVersionError
from ..models.governor import ServerInfo
from ..models.migration import DEFAULT_FULL_SUPPORT_EDITIONS, MIN_SUPPORTED_MAJOR_VERSION

logger = logging.getLogger(__name__)


@dataclass
class CompatibilityReport:
    """Outcome of checking a source/destination pair."""
    source: ServerInfo
    destination: ServerInfo
    destination_full_support: bool = True
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.to_dict(),
            "destination": self.destination.to_dict(),
            "destination_full_support": self.destination_full_support,
            "warnings": self.warnings,
        }


class CompatibilityValidator:
    """
    Gate that decides whether a migration may proceed.

    Supports:
    - Minimum major version on both servers (fatal)
    - Edition check on the destination (warning only; metadata still copies)
    """

    def __init__(
        self,
        min_major_version: int = MIN_SUPPORTED_MAJOR_VERSION,
        full_support_editions: Optional[List[str]] = None
    ):
        self.min_major_version = min_major_version
        self.full_support_editions = (
            full_support_editions
            if full_support_editions is not None
            else list(DEFAULT_FULL_SUPPORT_EDITIONS)
        )

    def check_version(self, server: ServerInfo) -> None:
        """
        Raise if the server predates Resource Governor.

        Raises:
            UnsupportedVersionError: If the major version is below the floor
        """
        if server.major_version < self.min_major_version:
            raise UnsupportedVersionError(server.name, server.major_version, self.min_major_version)

    def has_full_support(self, server: ServerInfo) -> bool:
        """Check whether the edition enforces Resource Governor limits."""
        edition = server.edition.lower()
        return any(e.lower() in edition for e in self.full_support_editions)

    def validate(self, source: ServerInfo, destination: ServerInfo) -> CompatibilityReport:
        """
        Check a source/destination pair.

        Raises:
            UnsupportedVersionError: If either server is too old
        """
        self.check_version(source)
        self.check_version(destination)

        report = CompatibilityReport(source=source, destination=destination)

        if not self.has_full_support(destination):
            report.destination_full_support = False
            message = (
                f"{destination.name} is {destination.edition or 'an unknown edition'}. "
                "Resource Governor metadata will be copied but is only enforced on "
                f"{', '.join(self.full_support_editions)} editions."
            )
            report.warnings.append(message)
            logger.warning(message)

        return report
