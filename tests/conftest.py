"""
Pytest configuration and shared fixtures for the Tallyboard test suite.

Provides record factories, an in-memory RecordSource for unit tests and the
FastAPI client for integration tests.
"""

import asyncio
import os
import tempfile
import uuid as _uuid
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing app
# Use temp path (must not exist - DuckDB creates the file). :memory: would give
# each source its own database.
_test_db_path = os.path.join(tempfile.gettempdir(), f"tallyboard_test_{_uuid.uuid4().hex[:8]}.duckdb")
os.environ["TESTING"] = "true"
os.environ["DB_PATH"] = _test_db_path
os.environ["SOURCE_TIMEOUT_SECONDS"] = "5"


from tallyboard.engine.transforms import filter_records, paginate, sort_records
from tallyboard.engine.trend import parse_date
from tallyboard.errors import SourceUnavailableError
from tallyboard.models.enums import EngagementEventType
from tallyboard.models.records import DateRange, Page, SortSpec
from tallyboard.models.tracking import TrackingEvent
from tallyboard.storage.base import RecordSource
from tallyboard.storage.schema import date_column

TENANT = "test_tenant"


# ---------------------------------------------------------------------------
# Record factories: plain mappings, as a RecordSource returns them
# ---------------------------------------------------------------------------


def _id(prefix: str) -> str:
    return f"{prefix}_{_uuid.uuid4().hex[:10]}"


def make_customer(name: str = "Acme Traders", **overrides) -> dict:
    """Factory function for customer records."""
    defaults = dict(
        id=_id("cus"),
        tenant_id=TENANT,
        name=name,
        email=f"{name.split()[0].lower()}@example.com",
        created_at=datetime(2025, 1, 15, 10, 0),
    )
    defaults.update(overrides)
    return defaults


def make_supplier(name: str = "Northwind Foods", **overrides) -> dict:
    """Factory function for supplier records."""
    defaults = dict(
        id=_id("sup"),
        tenant_id=TENANT,
        name=name,
        email=f"{name.split()[0].lower()}@example.com",
        created_at=datetime(2025, 1, 10, 9, 0),
    )
    defaults.update(overrides)
    return defaults


def make_product(name: str = "Basmati Rice 25kg", unit_price: float = 1850.0, **overrides) -> dict:
    """Factory function for product records."""
    defaults = dict(
        id=_id("prd"),
        tenant_id=TENANT,
        name=name,
        category="Grains",
        unit="bag",
        unit_price=unit_price,
        stock_quantity=50,
        reorder_level=10,
        created_at=datetime(2025, 1, 1, 8, 0),
    )
    defaults.update(overrides)
    return defaults


def make_invoice(
    customer_id: str = "cus_1",
    total_amount: float = 1000.0,
    status: str = "sent",
    due_date: Optional[date] = None,
    created_at: Optional[datetime] = None,
    **overrides,
) -> dict:
    """Factory function for invoice records."""
    created_at = created_at or datetime(2025, 3, 1, 12, 0)
    defaults = dict(
        id=_id("inv"),
        tenant_id=TENANT,
        invoice_number=f"INV-{_uuid.uuid4().hex[:4].upper()}",
        customer_id=customer_id,
        status=status,
        invoice_date=created_at.date(),
        due_date=due_date or created_at.date() + timedelta(days=30),
        total_amount=total_amount,
        total_tax_amount=round(total_amount * 0.18, 2) if total_amount else 0.0,
        created_at=created_at,
    )
    defaults.update(overrides)
    return defaults


def make_invoice_item(invoice_id: str, product_id: str, quantity: float = 1, unit_price: float = 100.0, **overrides) -> dict:
    """Factory function for invoice line records."""
    defaults = dict(
        id=_id("itm"),
        tenant_id=TENANT,
        invoice_id=invoice_id,
        product_id=product_id,
        category="Grains",
        quantity=quantity,
        unit_price=unit_price,
        total_amount=quantity * unit_price,
        created_at=datetime(2025, 3, 1, 12, 0),
    )
    defaults.update(overrides)
    return defaults


def make_bill(
    supplier_id: str = "sup_1",
    total_amount: float = 500.0,
    status: str = "sent",
    due_date: Optional[date] = None,
    **overrides,
) -> dict:
    """Factory function for bill records."""
    created_at = overrides.pop("created_at", datetime(2025, 3, 1, 9, 0))
    defaults = dict(
        id=_id("bil"),
        tenant_id=TENANT,
        bill_number=f"BILL-{_uuid.uuid4().hex[:4].upper()}",
        supplier_id=supplier_id,
        status=status,
        bill_date=created_at.date(),
        due_date=due_date or created_at.date() + timedelta(days=30),
        total_amount=total_amount,
        created_at=created_at,
    )
    defaults.update(overrides)
    return defaults


def make_tracking_event(
    subject_id: str = "quo_1",
    event_type: EngagementEventType = EngagementEventType.OPENED,
    recipient: str = "buyer@example.com",
    event_date: Optional[datetime] = None,
    **overrides,
) -> dict:
    """Factory function for tracking event records."""
    defaults = dict(
        event_id=str(_uuid.uuid4()),
        tenant_id=TENANT,
        subject_id=subject_id,
        event_type=event_type.value,
        recipient=recipient,
        ip_address="203.0.113.10",
        user_agent="pytest",
        event_date=event_date or datetime(2025, 3, 2, 10, 0),
    )
    defaults.update(overrides)
    return defaults


# ---------------------------------------------------------------------------
# Mock record source for pure unit tests
# ---------------------------------------------------------------------------


class MockRecordSource(RecordSource):
    """
    In-memory RecordSource.

    Entities and procedure results are seeded directly. Any entity or
    procedure name listed in ``failing`` raises SourceUnavailableError; names in
    ``delays`` sleep first, which lets tests observe cancellation.
    """

    def __init__(self):
        self.entities: dict[str, list[dict]] = {}
        self.procedures: dict[str, Any] = {}
        self.failing: set[str] = set()
        self.delays: dict[str, float] = {}
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.cancelled: list[str] = []
        self.tracking_events: list[TrackingEvent] = []

    def add(self, entity: str, *records: dict) -> None:
        self.entities.setdefault(entity, []).extend(records)

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        try:
            if name in self.delays:
                await asyncio.sleep(self.delays[name])
        except asyncio.CancelledError:
            self.cancelled.append(name)
            raise
        if name in self.failing:
            raise SourceUnavailableError(name, "simulated outage")
        self.completed.append(name)

    async def fetch(
        self,
        entity: str,
        tenant_id: str,
        filters=None,
        date_range: Optional[DateRange] = None,
        sort: Optional[SortSpec] = None,
        page: Optional[Page] = None,
    ) -> list[dict]:
        await self._enter(entity)
        records = filter_records(self.entities.get(entity, []), {"tenant_id": tenant_id, **(filters or {})})
        if date_range is not None:
            column = date_column(entity)
            records = [
                r
                for r in records
                if (day := parse_date(r.get(column))) is not None
                and (date_range.start is None or day >= date_range.start)
                and (date_range.end is None or day <= date_range.end)
            ]
        if sort is not None:
            records = sort_records(records, sort)
        return paginate(records, page)

    async def call_procedure(self, name: str, tenant_id: str, params=None):
        await self._enter(name)
        return self.procedures.get(name, {})

    async def write_tracking_event(self, event: TrackingEvent) -> str:
        await self._enter("tracking_events")
        self.tracking_events.append(event)
        return event.event_id


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_source():
    """Fresh MockRecordSource instance for each test."""
    return MockRecordSource()


@pytest.fixture
def sample_customers():
    return [make_customer("Sharma Traders"), make_customer("Mehta Distributors"), make_customer("Gupta Retail")]


@pytest.fixture
def populated_source(mock_source, sample_customers):
    """MockRecordSource with customers, products, invoices and lines."""
    rice = make_product("Basmati Rice 25kg", 1850.0)
    oil = make_product("Sunflower Oil 15L", 2100.0, category="Oils")
    mock_source.add("customers", *sample_customers)
    mock_source.add("products", rice, oil)

    amounts = [1200.0, 800.0, 3000.0, 450.0]
    for i, amount in enumerate(amounts):
        customer = sample_customers[i % len(sample_customers)]
        invoice = make_invoice(
            customer_id=customer["id"],
            total_amount=amount,
            created_at=datetime.combine(date.today() - timedelta(days=i + 1), datetime.min.time()),
        )
        mock_source.add("invoices", invoice)
        mock_source.add(
            "invoice_items",
            make_invoice_item(
                invoice["id"],
                (rice if i % 2 == 0 else oil)["id"],
                quantity=2,
                unit_price=amount / 2,
                created_at=invoice["created_at"],
            ),
        )
    return mock_source


@pytest.fixture
def duckdb_source():
    """Fresh in-memory DuckDB source, closed after the test."""
    from tallyboard.storage.duckdb_source import IN_MEMORY, DuckDBRecordSource

    source = DuckDBRecordSource(db_path=IN_MEMORY, threads=1, timeout_seconds=5.0)
    yield source
    source.close()


@pytest.fixture
def client():
    """FastAPI test client for integration tests."""
    from tallyboard.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    """Bearer token for the test tenant."""
    from tallyboard.auth.jwt import create_access_token

    return {
        "Authorization": f"Bearer {create_access_token(TENANT)}",
        "X-Request-ID": str(_uuid.uuid4()),
    }
