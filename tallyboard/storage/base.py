"""
Abstract record source interface.

A RecordSource is the external store the reports are derived from. It answers
two kinds of requests: entity fetches (filter, date range, sort and page
applied by the store) and named server-side procedures that return
pre-aggregated results. It never aggregates beyond the caller's sort and page.

Every call is scoped to a tenant. Implementations report any failure
(query error, timeout, unknown entity or procedure) as SourceUnavailableError
naming the entity or procedure that failed.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Union

from tallyboard.models.records import DateRange, FilterSpec, Page, Record, SortSpec
from tallyboard.models.tracking import TrackingEvent

ProcedureResult = Union[Record, list[Record]]


class RecordSource(ABC):
    """
    Abstract base class for record sources.

    Implementations must be safe to call concurrently from several asyncio
    tasks; the report assembler fans independent fetches out in parallel.
    """

    @abstractmethod
    async def fetch(
        self,
        entity: str,
        tenant_id: str,
        filters: Optional[FilterSpec] = None,
        date_range: Optional[DateRange] = None,
        sort: Optional[SortSpec] = None,
        page: Optional[Page] = None,
    ) -> list[Record]:
        """
        Fetch records of one entity.

        Args:
            entity: Entity name (e.g. "invoices", "customers")
            tenant_id: Tenant whose records are read
            filters: Exact-match field filters
            date_range: Inclusive range applied to the entity's date column
            sort: Optional single-field sort
            page: Optional offset/limit window

        Returns:
            Records as plain mappings

        Raises:
            SourceUnavailableError: If the fetch fails
        """
        pass

    @abstractmethod
    async def call_procedure(
        self,
        name: str,
        tenant_id: str,
        params: Optional[dict[str, Any]] = None,
    ) -> ProcedureResult:
        """
        Call a server-side procedure returning pre-aggregated data.

        Args:
            name: Procedure name (e.g. "get_balance_sheet")
            tenant_id: Tenant the aggregation is computed for
            params: Procedure parameters

        Returns:
            A single mapping or a list of mappings

        Raises:
            SourceUnavailableError: If the call fails
        """
        pass

    @abstractmethod
    async def write_tracking_event(self, event: TrackingEvent) -> str:
        """
        Append one engagement event.

        Args:
            event: Validated tracking event

        Returns:
            The stored event id

        Raises:
            SourceUnavailableError: If the write fails
        """
        pass
