"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import uuid

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"
DEFAULT_RESERVED_POOLS = ["internal", "default"]
DEFAULT_FULL_SUPPORT_EDITIONS = ["Enterprise", "Developer", "Datacenter", "Evaluation"]
MIN_SUPPORTED_MAJOR_VERSION = 10  # SQL Server 2008


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    CHECKING = "checking"
    COPYING_SETTINGS = "copying_settings"
    COPYING_POOLS = "copying_pools"
    RECONFIGURING = "reconfiguring"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Outcome of a single migration step."""
    PENDING = "pending"
    SUCCESSFUL = "successful"
    SKIPPED = "skipped"
    FAILED = "failed"
    DRY_RUN = "dry_run"


class ObjectType(str, Enum):
    """Kinds of Resource Governor objects a step can act on."""
    SETTINGS = "Resource Governor Settings"
    CLASSIFIER = "Classifier Function"
    POOL = "Resource Pool"
    WORKLOAD_GROUP = "Workload Group"
    RECONFIGURE = "Reconfigure"


@dataclass
class ServerConnection:
    """Connection settings for one SQL Server instance."""
    server: str
    user: Optional[str] = None  # None means a trusted (Windows) connection
    password: Optional[str] = None
    database: str = "master"
    driver: str = DEFAULT_DRIVER
    trust_server_certificate: bool = False
    encrypt: Optional[bool] = None
    timeout: int = 30

    @property
    def uses_trusted_connection(self) -> bool:
        return not self.user

    def connection_string(self) -> str:
        """Build an ODBC connection string for pyodbc."""
        parts = [
            f"DRIVER={{{self.driver}}}",
            f"SERVER={self.server}",
            f"DATABASE={self.database}",
        ]
        if self.uses_trusted_connection:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={self.user}")
            parts.append(f"PWD={{{(self.password or '').replace('}', '}}')}}}")
        if self.encrypt is not None:
            parts.append(f"Encrypt={'yes' if self.encrypt else 'no'}")
        if self.trust_server_certificate:
            parts.append("TrustServerCertificate=yes")
        return ";".join(parts) + ";"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (password omitted)."""
        return {
            "server": self.server,
            "user": self.user,
            "database": self.database,
            "driver": self.driver,
            "trust_server_certificate": self.trust_server_certificate,
            "encrypt": self.encrypt,
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConnection":
        """Create from dictionary representation."""
        return cls(
            server=data.get("server", ""),
            user=data.get("user"),
            password=data.get("password"),
            database=data.get("database", "master"),
            driver=data.get("driver", DEFAULT_DRIVER),
            trust_server_certificate=data.get("trust_server_certificate", False),
            encrypt=data.get("encrypt"),
            timeout=data.get("timeout", 30),
        )


@dataclass
class MigrationStep:
    """A single action taken against one Resource Governor object."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    object_type: ObjectType = ObjectType.POOL
    name: str = ""
    status: StepStatus = StepStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: str = ""
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "object_type": self.object_type.value,
            "name": self.name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "notes": self.notes,
            "errors": self.errors,
            "warnings": self.warnings,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def fail(self, error: Exception) -> None:
        """Mark the step failed and record the error."""
        self.status = StepStatus.FAILED
        self.notes = str(error)
        self.errors.append({
            "error": str(error),
            "type": type(error).__name__,
            "timestamp": datetime.utcnow().isoformat(),
        })

    def skip(self, reason: str) -> None:
        """Mark the step skipped with a warning."""
        self.status = StepStatus.SKIPPED
        self.notes = reason
        self.warnings.append(reason)


@dataclass
class MigrationRun:
    """A complete migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source: str = ""
    destination: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    dry_run: bool = False
    force: bool = False

    # Timing
    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Progress
    steps: List[MigrationStep] = field(default_factory=list)
    current_step: Optional[str] = None

    # Statistics
    total_succeeded: int = 0
    total_failed: int = 0
    total_skipped: int = 0
    total_dry_run: int = 0

    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    # Server versions, editions and other facts gathered during the run
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "source": self.source,
            "destination": self.destination,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "force": self.force,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "steps": [s.to_dict() for s in self.steps],
            "current_step": self.current_step,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "total_skipped": self.total_skipped,
            "total_dry_run": self.total_dry_run,
            "errors": self.errors,
            "warnings": self.warnings,
            "metadata": self.metadata,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def has_failures(self) -> bool:
        return self.status == MigrationStatus.FAILED or any(
            s.status == StepStatus.FAILED for s in self.steps
        )

    def add_step(self, object_type: ObjectType, name: str) -> MigrationStep:
        """Add a new step to the migration."""
        step = MigrationStep(object_type=object_type, name=name)
        self.steps.append(step)
        self.current_step = step.id
        return step

    def get_step(self, step_id: str) -> Optional[MigrationStep]:
        """Get a step by ID."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def steps_for(self, object_type: ObjectType) -> List[MigrationStep]:
        """Get all steps acting on one kind of object."""
        return [s for s in self.steps if s.object_type == object_type]

    def update_totals(self) -> None:
        """Update total statistics from steps."""
        self.total_succeeded = sum(1 for s in self.steps if s.status == StepStatus.SUCCESSFUL)
        self.total_failed = sum(1 for s in self.steps if s.status == StepStatus.FAILED)
        self.total_skipped = sum(1 for s in self.steps if s.status == StepStatus.SKIPPED)
        self.total_dry_run = sum(1 for s in self.steps if s.status == StepStatus.DRY_RUN)


@dataclass
class MigrationConfig:
    """Configuration for a Resource Governor migration."""
    source: ServerConnection
    destination: ServerConnection

    # Pool selection
    pools: List[str] = field(default_factory=list)  # Empty means every non-reserved pool
    exclude_pools: List[str] = field(default_factory=list)
    reserved_pools: List[str] = field(default_factory=lambda: list(DEFAULT_RESERVED_POOLS))

    # Execution options
    force: bool = False
    dry_run: bool = False
    copy_classifier: bool = True

    # Compatibility gate
    min_major_version: int = MIN_SUPPORTED_MAJOR_VERSION
    full_support_editions: List[str] = field(
        default_factory=lambda: list(DEFAULT_FULL_SUPPORT_EDITIONS)
    )

    # Output
    output_dir: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source": self.source.to_dict(),
            "destination": self.destination.to_dict(),
            "pools": self.pools,
            "exclude_pools": self.exclude_pools,
            "reserved_pools": self.reserved_pools,
            "force": self.force,
            "dry_run": self.dry_run,
            "copy_classifier": self.copy_classifier,
            "min_major_version": self.min_major_version,
            "full_support_editions": self.full_support_editions,
            "output_dir": self.output_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            source=ServerConnection.from_dict(data.get("source") or {}),
            destination=ServerConnection.from_dict(data.get("destination") or {}),
            pools=data.get("pools", []),
            exclude_pools=data.get("exclude_pools", []),
            reserved_pools=data.get("reserved_pools", list(DEFAULT_RESERVED_POOLS)),
            force=data.get("force", False),
            dry_run=data.get("dry_run", False),
            copy_classifier=data.get("copy_classifier", True),
            min_major_version=data.get("min_major_version", MIN_SUPPORTED_MAJOR_VERSION),
            full_support_editions=data.get(
                "full_support_editions", list(DEFAULT_FULL_SUPPORT_EDITIONS)
            ),
            output_dir=data.get("output_dir"),
        )
