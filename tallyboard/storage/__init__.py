"""
Record source layer.

RecordSource is the fetch contract the report assembler consumes; the DuckDB
implementation serves it locally. Procedure payloads are decoded into typed
models in ``tallyboard.storage.decoders``.
"""

from functools import lru_cache

from tallyboard.config import get_settings

from .base import RecordSource
from .duckdb_source import DuckDBRecordSource


@lru_cache
def get_source() -> RecordSource:
    """
    Get cached record source instance (singleton).

    Returns:
        RecordSource implementation instance
    """
    settings = get_settings()
    return DuckDBRecordSource(
        db_path=settings.db_path,
        threads=settings.db_threads,
        timeout_seconds=settings.source_timeout_seconds,
    )


__all__ = [
    "RecordSource",
    "DuckDBRecordSource",
    "get_source",
]
