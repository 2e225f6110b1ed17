"""Resource Governor object models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def quote_name(name: str) -> str:
    """Bracket-quote an identifier."""
    return "[" + name.replace("]", "]]") + "]"


@dataclass
class ServerInfo:
    """Identity and version attributes of a connected server."""
    name: str  # Domain instance name, e.g. "HOST\\INSTANCE"
    version: str  # Full product version, e.g. "15.0.2000.5"
    edition: str = ""
    engine_edition: Optional[int] = None

    @property
    def major_version(self) -> int:
        """Major release number parsed from the product version."""
        try:
            return int(self.version.split(".")[0])
        except (ValueError, IndexError):
            return 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "version": self.version,
            "major_version": self.major_version,
            "edition": self.edition,
            "engine_edition": self.engine_edition,
        }


@dataclass
class ClassifierFunction:
    """A user-defined classifier function registered with Resource Governor."""
    schema: str
    name: str
    definition: str = ""

    @property
    def qualified_name(self) -> str:
        return f"{quote_name(self.schema)}.{quote_name(self.name)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema,
            "name": self.name,
            "definition": self.definition,
        }


@dataclass
class GovernorSettings:
    """Server-wide Resource Governor configuration."""
    is_enabled: bool = False
    classifier: Optional[ClassifierFunction] = None
    max_outstanding_io_per_volume: Optional[int] = None  # 2014+

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "is_enabled": self.is_enabled,
            "classifier": self.classifier.to_dict() if self.classifier else None,
            "max_outstanding_io_per_volume": self.max_outstanding_io_per_volume,
        }


@dataclass
class WorkloadGroup:
    """A workload group nested under a resource pool."""
    name: str
    pool_name: str
    group_id: Optional[int] = None
    importance: str = "MEDIUM"  # LOW, MEDIUM, HIGH
    request_max_memory_grant_percent: int = 25
    request_max_cpu_time_sec: int = 0
    request_memory_grant_timeout_sec: int = 0
    max_dop: int = 0
    group_max_requests: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "group_id": self.group_id,
            "name": self.name,
            "pool_name": self.pool_name,
            "importance": self.importance,
            "request_max_memory_grant_percent": self.request_max_memory_grant_percent,
            "request_max_cpu_time_sec": self.request_max_cpu_time_sec,
            "request_memory_grant_timeout_sec": self.request_memory_grant_timeout_sec,
            "max_dop": self.max_dop,
            "group_max_requests": self.group_max_requests,
        }


@dataclass
class ResourcePool:
    """A resource pool and the workload groups that use it."""
    name: str
    pool_id: Optional[int] = None
    min_cpu_percent: int = 0
    max_cpu_percent: int = 100
    min_memory_percent: int = 0
    max_memory_percent: int = 100
    cap_cpu_percent: Optional[int] = None  # 2012+
    min_iops_per_volume: Optional[int] = None  # 2014+
    max_iops_per_volume: Optional[int] = None  # 2014+
    workload_groups: List[WorkloadGroup] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "pool_id": self.pool_id,
            "name": self.name,
            "min_cpu_percent": self.min_cpu_percent,
            "max_cpu_percent": self.max_cpu_percent,
            "min_memory_percent": self.min_memory_percent,
            "max_memory_percent": self.max_memory_percent,
            "cap_cpu_percent": self.cap_cpu_percent,
            "min_iops_per_volume": self.min_iops_per_volume,
            "max_iops_per_volume": self.max_iops_per_volume,
            "workload_groups": [g.to_dict() for g in self.workload_groups],
        }

    def get_group(self, name: str) -> Optional[WorkloadGroup]:
        """Get a workload group by name (case-insensitive)."""
        for group in self.workload_groups:
            if group.name.lower() == name.lower():
                return group
        return None
