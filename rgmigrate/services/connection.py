"""SQL Server sessions over pyodbc."""

import logging
from typing import Any, Dict, List, Optional

from ..exceptions import ScriptExecutionError, ServerConnectionError
from ..models.governor import ServerInfo
from ..models.migration import ServerConnection
from .scripter import split_batches

logger = logging.getLogger(__name__)

SERVER_INFO_QUERY = """
SELECT
    CAST(SERVERPROPERTY('ServerName') AS nvarchar(256)) AS server_name,
    CAST(SERVERPROPERTY('ProductVersion') AS nvarchar(128)) AS product_version,
    CAST(SERVERPROPERTY('Edition') AS nvarchar(128)) AS edition,
    CAST(SERVERPROPERTY('EngineEdition') AS int) AS engine_edition
"""


class ServerSession:
    """
    An open session against one SQL Server instance.

    Sessions run in autocommit mode: ALTER RESOURCE GOVERNOR is not
    allowed inside a user transaction. Every statement is executed and
    fully consumed before the next one starts.
    """

    def __init__(self, settings: ServerConnection, connection: Any):
        """
        Wrap an already open connection.

        Args:
            settings: Connection settings the session was opened with
            connection: A DB-API connection (normally pyodbc.Connection)
        """
        self.settings = settings
        self._connection = connection
        self._info: Optional[ServerInfo] = None

    @classmethod
    def connect(cls, settings: ServerConnection) -> "ServerSession":
        """
        Open a session.

        Raises:
            ServerConnectionError: If the server cannot be reached or login fails
        """
        import pyodbc

        auth = "trusted connection" if settings.uses_trusted_connection else f"login {settings.user}"
        logger.info(f"Connecting to {settings.server} ({auth})")
        try:
            connection = pyodbc.connect(
                settings.connection_string(),
                autocommit=True,
                timeout=settings.timeout,
            )
        except pyodbc.Error as e:
            raise ServerConnectionError(settings.server, str(e)) from e
        return cls(settings, connection)

    @property
    def info(self) -> ServerInfo:
        """Server identity, version and edition (read once per session)."""
        if self._info is None:
            row = self.query_one(SERVER_INFO_QUERY)
            if not row:
                raise ServerConnectionError(self.settings.server, "SERVERPROPERTY returned no rows")
            self._info = ServerInfo(
                name=row["server_name"] or self.settings.server,
                version=row["product_version"] or "0",
                edition=row["edition"] or "",
                engine_edition=row["engine_edition"],
            )
            logger.debug(
                f"{self._info.name}: version {self._info.version}, edition {self._info.edition}"
            )
        return self._info

    @property
    def name(self) -> str:
        """Domain instance name reported by the server."""
        return self.info.name

    def query(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        """
        Run a read-only query and return rows as dictionaries.

        Raises:
            ScriptExecutionError: If the server rejects the query
        """
        import pyodbc

        try:
            with self._connection.cursor() as cursor:
                cursor.execute(sql, *params)
                if cursor.description is None:
                    return []
                columns = [column[0] for column in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except pyodbc.Error as e:
            raise ScriptExecutionError(self.settings.server, sql, str(e), e) from e

    def query_one(self, sql: str, *params: Any) -> Optional[Dict[str, Any]]:
        rows = self.query(sql, *params)
        return rows[0] if rows else None

    def execute(self, batch: str) -> None:
        """
        Execute a single T-SQL batch.

        Raises:
            ScriptExecutionError: If the server rejects the batch
        """
        import pyodbc

        logger.debug(f"Executing on {self.settings.server}:\n{batch}")
        try:
            with self._connection.cursor() as cursor:
                cursor.execute(batch)
                # Drain remaining result sets so errors in later statements surface here
                while cursor.nextset():
                    pass
        except pyodbc.Error as e:
            raise ScriptExecutionError(self.settings.server, batch, str(e), e) from e

    def execute_script(self, script: str) -> int:
        """
        Execute a GO-separated script batch by batch.

        Returns:
            Number of batches executed
        """
        batches = split_batches(script)
        for batch in batches:
            self.execute(batch)
        return len(batches)

    def close(self) -> None:
        """Close the underlying connection."""
        if self._connection is not None:
            import pyodbc

            try:
                self._connection.close()
            except pyodbc.Error as e:
                logger.warning(f"Error closing connection to {self.settings.server}: {e}")
            self._connection = None

    def __enter__(self) -> "ServerSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
