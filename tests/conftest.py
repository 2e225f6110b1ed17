"""
Test configuration for rgmigrate.

FakeSession stands in for ServerSession: it answers the catalog queries
from an in-memory Resource Governor and applies the DDL it is sent, so the
orchestrator can be exercised end to end without a SQL Server.
"""

import copy
import re
from typing import Any, Dict, Iterable, List, Optional

import pytest

from rgmigrate.exceptions import ScriptExecutionError
from rgmigrate.extractors.governor_extractor import (
    GROUPS_QUERY,
    OBJECT_EXISTS_QUERY,
    POOLS_QUERY,
    SETTINGS_QUERY,
)
from rgmigrate.models.governor import (
    ClassifierFunction,
    GovernorSettings,
    ResourcePool,
    ServerInfo,
    WorkloadGroup,
)
from rgmigrate.models.migration import MigrationConfig, ServerConnection
from rgmigrate.services.scripter import split_batches

_NAME = r"\[((?:[^\]]|\]\])+)\]"
_CREATE_POOL = re.compile(r"^CREATE RESOURCE POOL " + _NAME, re.IGNORECASE | re.MULTILINE)
_DROP_POOL = re.compile(r"^DROP RESOURCE POOL " + _NAME, re.IGNORECASE | re.MULTILINE)
_CREATE_GROUP = re.compile(
    r"^CREATE WORKLOAD GROUP " + _NAME + r" WITH \(.*\) USING " + _NAME,
    re.IGNORECASE | re.MULTILINE,
)
_DROP_GROUP = re.compile(r"^DROP WORKLOAD GROUP " + _NAME, re.IGNORECASE | re.MULTILINE)
_CREATE_FUNCTION = re.compile(r"CREATE\s+FUNCTION\s+\[?(\w+)\]?\.\[?(\w+)\]?", re.IGNORECASE)
_DROP_FUNCTION = re.compile(r"^DROP FUNCTION " + _NAME + r"\." + _NAME, re.IGNORECASE | re.MULTILINE)

MUTATING_PREFIXES = ("CREATE", "DROP", "ALTER")

CLASSIFIER_DEFINITION = (
    "CREATE FUNCTION dbo.fnClassifier() RETURNS sysname WITH SCHEMABINDING AS\n"
    "BEGIN\n"
    "    IF @@SERVERNAME = 'SRC01' RETURN N'Reports';\n"
    "    RETURN N'default';\n"
    "END"
)


def make_pool(name: str, groups: Iterable[str] = (), **options: Any) -> ResourcePool:
    """Build a pool with workload groups bound to it."""
    pool = ResourcePool(name=name, **options)
    pool.workload_groups = [WorkloadGroup(name=g, pool_name=name) for g in groups]
    return pool


def system_pools() -> List[ResourcePool]:
    return [
        make_pool("internal", ["internal"]),
        make_pool("default", ["default"]),
    ]


class FakeSession:
    """In-memory stand-in for ServerSession."""

    def __init__(
        self,
        name: str,
        version: str = "15.0.2000.5",
        edition: str = "Developer Edition (64-bit)",
        pools: Optional[List[ResourcePool]] = None,
        settings: Optional[GovernorSettings] = None,
        functions: Iterable[str] = (),
    ):
        self.info = ServerInfo(name=name, version=version, edition=edition, engine_edition=3)
        self.pools: List[ResourcePool] = copy.deepcopy(pools if pools is not None else system_pools())
        self.settings = settings or GovernorSettings(is_enabled=True, max_outstanding_io_per_volume=0)
        self.functions = set(functions)  # "[schema].[name]"
        self.executed: List[str] = []
        self.fail_on: List[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self.info.name

    # Reads

    def query(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        if sql == SETTINGS_QUERY:
            return [self._settings_row()]
        if sql == POOLS_QUERY:
            return [self._pool_row(i, p) for i, p in enumerate(self.pools, 1)]
        if sql == GROUPS_QUERY:
            rows = []
            group_id = 0
            for pool_id, pool in enumerate(self.pools, 1):
                for group in pool.workload_groups:
                    group_id += 1
                    row = group.to_dict()
                    row.update({"group_id": group_id, "pool_id": pool_id, "pool_name": pool.name})
                    rows.append(row)
            return rows
        if sql == OBJECT_EXISTS_QUERY:
            return [{"object_id": 1 if params[0] in self.functions else None}]
        raise AssertionError(f"Unexpected query: {sql}")

    def query_one(self, sql: str, *params: Any) -> Optional[Dict[str, Any]]:
        rows = self.query(sql, *params)
        return rows[0] if rows else None

    def _settings_row(self) -> Dict[str, Any]:
        classifier = self.settings.classifier
        return {
            "classifier_function_id": 1001 if classifier else 0,
            "is_enabled": 1 if self.settings.is_enabled else 0,
            "max_outstanding_io_per_volume": self.settings.max_outstanding_io_per_volume,
            "classifier_schema": classifier.schema if classifier else None,
            "classifier_name": classifier.name if classifier else None,
            "classifier_definition": classifier.definition if classifier else None,
        }

    def _pool_row(self, pool_id: int, pool: ResourcePool) -> Dict[str, Any]:
        row = pool.to_dict()
        row.pop("workload_groups")
        row["pool_id"] = pool_id
        return row

    # Writes

    @property
    def mutations(self) -> List[str]:
        return [b for b in self.executed if b.lstrip().upper().startswith(MUTATING_PREFIXES)]

    def get_pool(self, name: str) -> Optional[ResourcePool]:
        for pool in self.pools:
            if pool.name.lower() == name.lower():
                return pool
        return None

    def execute(self, batch: str) -> None:
        self.executed.append(batch)
        for marker in self.fail_on:
            if marker in batch:
                raise ScriptExecutionError(self.name, batch, f"simulated failure on {marker}")
        self._apply(batch)

    def execute_script(self, script: str) -> int:
        batches = split_batches(script)
        for batch in batches:
            self.execute(batch)
        return len(batches)

    def _apply(self, batch: str) -> None:
        match = _CREATE_POOL.search(batch)
        if match:
            self.pools.append(ResourcePool(name=match.group(1)))
            return
        match = _DROP_POOL.search(batch)
        if match:
            pool = self.get_pool(match.group(1))
            if pool.workload_groups:
                raise ScriptExecutionError(self.name, batch, "pool still has workload groups")
            self.pools.remove(pool)
            return
        match = _CREATE_GROUP.search(batch)
        if match:
            self.get_pool(match.group(2)).workload_groups.append(
                WorkloadGroup(name=match.group(1), pool_name=match.group(2))
            )
            return
        match = _DROP_GROUP.search(batch)
        if match:
            for pool in self.pools:
                pool.workload_groups = [g for g in pool.workload_groups if g.name != match.group(1)]
            return
        match = _DROP_FUNCTION.search(batch)
        if match:
            self.functions.discard(f"[{match.group(1)}].[{match.group(2)}]")
            return
        match = _CREATE_FUNCTION.search(batch)
        if match:
            self.functions.add(f"[{match.group(1)}].[{match.group(2)}]")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def source_pools() -> List[ResourcePool]:
    return system_pools() + [
        make_pool("SalesPool", ["Reports", "Adhoc"], max_cpu_percent=50, cap_cpu_percent=60),
        make_pool("EtlPool", ["Loads"], min_memory_percent=10),
    ]


@pytest.fixture
def source_session(source_pools) -> FakeSession:
    return FakeSession("SRC01", pools=source_pools)


@pytest.fixture
def destination_session() -> FakeSession:
    return FakeSession("DST01")


@pytest.fixture
def classifier() -> ClassifierFunction:
    return ClassifierFunction(schema="dbo", name="fnClassifier", definition=CLASSIFIER_DEFINITION)


@pytest.fixture
def config() -> MigrationConfig:
    return MigrationConfig(
        source=ServerConnection(server="SRC01"),
        destination=ServerConnection(server="DST01"),
    )
