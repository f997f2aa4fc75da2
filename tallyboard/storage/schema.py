"""
DuckDB table catalogue for the record source.

TABLES is the single whitelist of entities and columns: the schema is created
from it and every fetch validates entity and column names against it before
any SQL is built. Every table carries ``tenant_id``.
"""

TABLES: dict[str, dict[str, str]] = {
    # Sales side
    "customers": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "name": "VARCHAR NOT NULL",
        "email": "VARCHAR",
        "phone": "VARCHAR",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "products": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "name": "VARCHAR NOT NULL",
        "category": "VARCHAR",
        "unit": "VARCHAR",
        "unit_price": "DOUBLE DEFAULT 0",
        "stock_quantity": "INTEGER DEFAULT 0",
        "reorder_level": "INTEGER DEFAULT 0",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "invoices": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "invoice_number": "VARCHAR",
        "customer_id": "VARCHAR",
        "status": "VARCHAR NOT NULL DEFAULT 'draft'",
        "invoice_date": "DATE",
        "due_date": "DATE",
        "total_amount": "DOUBLE DEFAULT 0",
        "total_tax_amount": "DOUBLE DEFAULT 0",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "invoice_items": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "invoice_id": "VARCHAR NOT NULL",
        "product_id": "VARCHAR",
        "category": "VARCHAR",
        "quantity": "DOUBLE DEFAULT 0",
        "unit_price": "DOUBLE DEFAULT 0",
        "total_amount": "DOUBLE DEFAULT 0",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "invoice_payments": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "invoice_id": "VARCHAR NOT NULL",
        "payment_method": "VARCHAR",
        "amount": "DOUBLE DEFAULT 0",
        "payment_date": "DATE",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "sales_orders": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "customer_id": "VARCHAR",
        "status": "VARCHAR NOT NULL DEFAULT 'pending'",
        "total_amount": "DOUBLE DEFAULT 0",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "quotations": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "quotation_number": "VARCHAR",
        "customer_id": "VARCHAR",
        "status": "VARCHAR NOT NULL DEFAULT 'draft'",
        "total_amount": "DOUBLE DEFAULT 0",
        "valid_until": "DATE",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    # Purchasing side
    "suppliers": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "name": "VARCHAR NOT NULL",
        "email": "VARCHAR",
        "phone": "VARCHAR",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "bills": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "bill_number": "VARCHAR",
        "supplier_id": "VARCHAR",
        "status": "VARCHAR NOT NULL DEFAULT 'draft'",
        "bill_date": "DATE",
        "due_date": "DATE",
        "total_amount": "DOUBLE DEFAULT 0",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "bill_items": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "bill_id": "VARCHAR NOT NULL",
        "category": "VARCHAR",
        "quantity": "DOUBLE DEFAULT 0",
        "unit_price": "DOUBLE DEFAULT 0",
        "total_amount": "DOUBLE DEFAULT 0",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "bill_payments": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "bill_id": "VARCHAR NOT NULL",
        "payment_method": "VARCHAR",
        "amount": "DOUBLE DEFAULT 0",
        "payment_date": "DATE",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    "purchase_orders": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "supplier_id": "VARCHAR",
        "status": "VARCHAR NOT NULL DEFAULT 'draft'",
        "total_amount": "DOUBLE DEFAULT 0",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    # Statement ledgers
    "assets": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "category": "VARCHAR",
        "name": "VARCHAR NOT NULL",
        "amount": "DOUBLE DEFAULT 0",
        "entry_date": "DATE NOT NULL",
    },
    "liabilities": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "category": "VARCHAR",
        "name": "VARCHAR NOT NULL",
        "amount": "DOUBLE DEFAULT 0",
        "entry_date": "DATE NOT NULL",
    },
    "equity": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "category": "VARCHAR",
        "name": "VARCHAR NOT NULL",
        "amount": "DOUBLE DEFAULT 0",
        "entry_date": "DATE NOT NULL",
    },
    "cash_flow_items": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "type": "VARCHAR NOT NULL",
        "description": "VARCHAR",
        "amount": "DOUBLE DEFAULT 0",
        "entry_date": "DATE NOT NULL",
    },
    "tax_liabilities": {
        "id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "tax_type": "VARCHAR NOT NULL",
        "amount": "DOUBLE DEFAULT 0",
        "due_date": "DATE",
        "status": "VARCHAR NOT NULL DEFAULT 'pending'",
        "created_at": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
    # Engagement tracking
    "tracking_events": {
        "event_id": "VARCHAR PRIMARY KEY",
        "tenant_id": "VARCHAR NOT NULL",
        "subject_id": "VARCHAR NOT NULL",
        "event_type": "VARCHAR NOT NULL",
        "recipient": "VARCHAR NOT NULL",
        "ip_address": "VARCHAR",
        "user_agent": "VARCHAR",
        "event_date": "TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
    },
}

# Column a DateRange applies to, per entity.
DATE_COLUMNS: dict[str, str] = {
    "invoice_payments": "payment_date",
    "bill_payments": "payment_date",
    "assets": "entry_date",
    "liabilities": "entry_date",
    "equity": "entry_date",
    "cash_flow_items": "entry_date",
    "tracking_events": "event_date",
}
DEFAULT_DATE_COLUMN = "created_at"

INDEXES: list[tuple[str, tuple[str, ...]]] = [
    ("invoices", ("tenant_id", "created_at")),
    ("invoices", ("tenant_id", "status")),
    ("invoice_items", ("tenant_id", "invoice_id")),
    ("bills", ("tenant_id", "status")),
    ("bill_items", ("tenant_id", "bill_id")),
    ("tracking_events", ("tenant_id", "subject_id")),
    ("tracking_events", ("tenant_id", "event_date")),
]


def date_column(entity: str) -> str:
    return DATE_COLUMNS.get(entity, DEFAULT_DATE_COLUMN)


def create_table_sql(entity: str) -> str:
    columns = ",\n    ".join(f"{name} {ddl}" for name, ddl in TABLES[entity].items())
    return f"CREATE TABLE IF NOT EXISTS {entity} (\n    {columns}\n)"


def create_index_sql(entity: str, columns: tuple[str, ...]) -> str:
    name = f"idx_{entity}_{'_'.join(columns)}"
    return f"CREATE INDEX IF NOT EXISTS {name} ON {entity}({', '.join(columns)})"
