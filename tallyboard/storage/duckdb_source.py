"""
DuckDB record source.

Serves entity fetches and server-side procedures from a local DuckDB file (or
an in-memory database for tests). Blocking DuckDB work runs in worker threads
with one cursor per thread, and every call is bounded by a timeout. Any
failure reaches the caller as SourceUnavailableError naming the entity or
procedure.

Entity and column names are checked against the table catalogue before SQL is
built; values are always bound as parameters.
"""

import asyncio
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

import duckdb
import structlog

from tallyboard.errors import SourceUnavailableError
from tallyboard.models.records import DateRange, FilterSpec, Page, Record, SortSpec
from tallyboard.models.tracking import TrackingEvent

from .base import ProcedureResult, RecordSource
from .procedures import PROCEDURES, rows_as_dicts
from .schema import INDEXES, TABLES, create_index_sql, create_table_sql, date_column

logger = structlog.get_logger(__name__)

IN_MEMORY = ":memory:"


def _bind(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class DuckDBRecordSource(RecordSource):
    """
    DuckDB implementation of the record source.

    Attributes:
        db_path: Path to the DuckDB database file, or ":memory:"
        timeout_seconds: Upper bound for one fetch, procedure call or write
        _local: Thread-local storage for per-thread cursors
        _lock: Thread lock for schema operations
        _initialized: Flag tracking whether schema is initialized
    """

    def __init__(self, db_path: str = "./data/tallyboard.duckdb", threads: int = 4, timeout_seconds: float = 10.0):
        """
        Initialize the DuckDB record source.

        Args:
            db_path: Path to DuckDB database file, or ":memory:"
            threads: DuckDB worker thread count
            timeout_seconds: Per-call timeout
        """
        self.db_path = db_path
        self.timeout_seconds = timeout_seconds
        if db_path != IN_MEMORY:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._root = duckdb.connect(db_path, config={"threads": threads})
        self._local = threading.local()
        self._lock = threading.Lock()
        self._initialized = False

        logger.info("duckdb_source_initialized", db_path=db_path, timeout_seconds=timeout_seconds)

        self._initialize_schema()

    @contextmanager
    def _get_connection(self):
        """
        Get a thread-local cursor on the shared database.

        Yields:
            DuckDB connection instance
        """
        if not hasattr(self._local, "connection"):
            self._local.connection = self._root.cursor()
            logger.debug("duckdb_cursor_created", thread_id=threading.get_ident())
        yield self._local.connection

    def _initialize_schema(self) -> None:
        """Create every catalogued table and index. Idempotent."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return
            with self._get_connection() as conn:
                for entity in TABLES:
                    conn.execute(create_table_sql(entity))
                for entity, columns in INDEXES:
                    conn.execute(create_index_sql(entity, columns))
            self._initialized = True
            logger.info("duckdb_schema_initialized", tables=len(TABLES))

    def clear_for_testing(self) -> None:
        """Delete all rows from every table."""
        with self._lock, self._get_connection() as conn:
            for entity in TABLES:
                conn.execute(f"DELETE FROM {entity}")
        logger.warning("duckdb_source_cleared")

    def close(self) -> None:
        self._root.close()

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def _columns(entity: str) -> dict[str, str]:
        columns = TABLES.get(entity)
        if columns is None:
            raise SourceUnavailableError(entity, "unknown entity")
        return columns

    @classmethod
    def _check_column(cls, entity: str, column: str) -> None:
        if column not in cls._columns(entity):
            raise SourceUnavailableError(entity, f"unknown column '{column}'")

    # =========================================================================
    # Synchronous operations (run in worker threads)
    # =========================================================================

    def _fetch_sync(
        self,
        entity: str,
        tenant_id: str,
        filters: Optional[FilterSpec],
        date_range: Optional[DateRange],
        sort: Optional[SortSpec],
        page: Optional[Page],
    ) -> list[Record]:
        self._columns(entity)
        clauses = ["tenant_id = ?"]
        params: list[Any] = [tenant_id]

        for field, value in (filters or {}).items():
            self._check_column(entity, field)
            if value is None:
                clauses.append(f"{field} IS NULL")
            else:
                clauses.append(f"{field} = ?")
                params.append(_bind(value))

        if date_range is not None:
            column = date_column(entity)
            if date_range.start is not None:
                clauses.append(f"CAST({column} AS DATE) >= ?")
                params.append(date_range.start)
            if date_range.end is not None:
                clauses.append(f"CAST({column} AS DATE) <= ?")
                params.append(date_range.end)

        sql = f"SELECT * FROM {entity} WHERE {' AND '.join(clauses)}"

        if sort is not None:
            self._check_column(entity, sort.field)
            direction = "DESC" if sort.descending else "ASC"
            sql += f" ORDER BY {sort.field} {direction} NULLS LAST, rowid"
        else:
            sql += " ORDER BY rowid"

        if page is not None:
            if page.limit is not None:
                sql += " LIMIT ?"
                params.append(page.limit)
            if page.offset:
                sql += " OFFSET ?"
                params.append(page.offset)

        with self._get_connection() as conn:
            records = rows_as_dicts(conn.execute(sql, params))

        logger.debug("records_fetched", entity=entity, count=len(records))
        return records

    def _call_sync(self, name: str, tenant_id: str, params: dict[str, Any]) -> ProcedureResult:
        procedure = PROCEDURES.get(name)
        if procedure is None:
            raise SourceUnavailableError(name, "unknown procedure")
        with self._get_connection() as conn:
            result = procedure(conn, tenant_id, **params)
        logger.debug("procedure_called", procedure=name)
        return result

    def _insert_sync(self, entity: str, records: list[Record]) -> int:
        columns = self._columns(entity)
        written = 0
        with self._get_connection() as conn:
            conn.execute("BEGIN TRANSACTION")
            try:
                for record in records:
                    fields = list(record)
                    for field in fields:
                        if field not in columns:
                            raise SourceUnavailableError(entity, f"unknown column '{field}'")
                    placeholders = ", ".join("?" for _ in fields)
                    conn.execute(
                        f"INSERT INTO {entity} ({', '.join(fields)}) VALUES ({placeholders})",
                        [_bind(record[field]) for field in fields],
                    )
                    written += 1
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
        logger.info("records_written", entity=entity, count=written)
        return written

    def write_records(self, entity: str, records: list[Record]) -> int:
        """
        Insert records into one entity table in a single transaction.

        Used by the demo seeder and by tests; reports never write.

        Args:
            entity: Entity name
            records: Records whose keys are column names

        Returns:
            Number of records written

        Raises:
            SourceUnavailableError: If the entity or a column is unknown or the insert fails
        """
        try:
            return self._insert_sync(entity, records)
        except SourceUnavailableError:
            raise
        except Exception as e:
            logger.error("write_records_failed", entity=entity, error=str(e))
            raise SourceUnavailableError(entity, str(e)) from e

    # =========================================================================
    # RecordSource contract
    # =========================================================================

    async def _run(self, entity: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout_seconds)
        except SourceUnavailableError as e:
            logger.warning("source_call_rejected", entity=e.entity, error=e.message)
            raise
        except asyncio.TimeoutError as e:
            logger.error("source_call_timed_out", entity=entity, timeout_seconds=self.timeout_seconds)
            raise SourceUnavailableError(entity, f"timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.error("source_call_failed", entity=entity, error=str(e))
            raise SourceUnavailableError(entity, str(e)) from e

    async def fetch(
        self,
        entity: str,
        tenant_id: str,
        filters: Optional[FilterSpec] = None,
        date_range: Optional[DateRange] = None,
        sort: Optional[SortSpec] = None,
        page: Optional[Page] = None,
    ) -> list[Record]:
        return await self._run(entity, self._fetch_sync, entity, tenant_id, filters, date_range, sort, page)

    async def call_procedure(
        self,
        name: str,
        tenant_id: str,
        params: Optional[dict[str, Any]] = None,
    ) -> ProcedureResult:
        return await self._run(name, self._call_sync, name, tenant_id, dict(params or {}))

    async def write_tracking_event(self, event: TrackingEvent) -> str:
        record = event.model_dump()
        await self._run("tracking_events", self._insert_sync, "tracking_events", [record])
        logger.info(
            "tracking_event_written",
            event_id=event.event_id,
            subject_id=event.subject_id,
            event_type=event.event_type.value,
        )
        return event.event_id
