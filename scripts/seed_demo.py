#!/usr/bin/env python3
"""
Tallyboard Demo Seeder

Fills a DuckDB record source with a small, deterministic dataset for one
tenant so every report and the engagement summary have something to show.

Usage:
    python scripts/seed_demo.py                       # tenant "demo", 6 months
    python scripts/seed_demo.py --tenant acme --months 3 --seed 7
    python scripts/seed_demo.py --db-path ./data/demo.duckdb --reset
"""

import argparse
import random
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import structlog

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tallyboard.auth.jwt import create_access_token
from tallyboard.config import get_settings
from tallyboard.models.enums import EngagementEventType
from tallyboard.storage.duckdb_source import DuckDBRecordSource
from tallyboard.utils.logging import configure_logging

logger = structlog.get_logger()

Record = dict[str, Any]


class DemoDataGenerator:
    """
    Generates a consistent set of records for one tenant.

    Invoices and bills are spread over the requested number of months with a
    mix of paid, sent and overdue statuses so that the aging buckets, the
    profit/loss statement and the payment statistics all get populated.
    """

    CUSTOMERS = [
        "Sharma Traders", "Mehta Distributors", "Patel & Sons", "Gupta Retail",
        "Iyer Wholesale", "Khan Enterprises", "Reddy Stores", "Das Supplies",
    ]
    SUPPLIERS = ["Northwind Foods", "Eastline Packaging", "Coastal Beverages", "Summit Logistics"]
    PRODUCTS = [
        ("Basmati Rice 25kg", "Grains", 1850.0),
        ("Sunflower Oil 15L", "Oils", 2100.0),
        ("Toor Dal 30kg", "Pulses", 3600.0),
        ("Sugar 50kg", "Grains", 2250.0),
        ("Tea Dust 10kg", "Beverages", 2900.0),
        ("Wheat Flour 50kg", "Grains", 1600.0),
        ("Mustard Oil 15L", "Oils", 2350.0),
        ("Chickpeas 30kg", "Pulses", 2700.0),
    ]
    PAYMENT_METHODS = ["bank_transfer", "upi", "cheque", "cash"]
    EXPENSE_CATEGORIES = ["Inventory", "Freight", "Packaging", "Utilities"]
    TAX_RATE = 0.18

    def __init__(self, tenant_id: str, seed: int = 42, months: int = 6, today: date | None = None):
        self.tenant_id = tenant_id
        self.rng = random.Random(seed)
        self.months = months
        self.today = today or date.today()
        self._counter = 0

    def _id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self.tenant_id}_{self._counter:05d}"

    def _day(self, max_days_back: int) -> date:
        return self.today - timedelta(days=self.rng.randint(0, max_days_back))

    def _timestamp(self, day: date) -> datetime:
        return datetime.combine(day, datetime.min.time()) + timedelta(hours=self.rng.randint(8, 18))

    def generate(self) -> dict[str, list[Record]]:
        """Generate every entity; returns entity name to records in insert order."""
        data: dict[str, list[Record]] = {}
        span = self.months * 30

        data["customers"] = [
            {"id": self._id("cus"), "tenant_id": self.tenant_id, "name": name,
             "email": f"accounts@{name.split()[0].lower()}.example", "created_at": self._timestamp(self._day(span))}
            for name in self.CUSTOMERS
        ]
        data["suppliers"] = [
            {"id": self._id("sup"), "tenant_id": self.tenant_id, "name": name,
             "email": f"billing@{name.split()[0].lower()}.example", "created_at": self._timestamp(self._day(span))}
            for name in self.SUPPLIERS
        ]
        data["products"] = [
            {"id": self._id("prd"), "tenant_id": self.tenant_id, "name": name, "category": category,
             "unit": "bag", "unit_price": price, "stock_quantity": self.rng.randint(0, 80),
             "reorder_level": 10, "created_at": self._timestamp(self._day(span))}
            for name, category, price in self.PRODUCTS
        ]

        self._sales(data, span)
        self._purchasing(data, span)
        self._ledgers(data)
        self._tracking(data)
        return data

    def _sales(self, data: dict[str, list[Record]], span: int) -> None:
        invoices, items, payments, orders, quotations = [], [], [], [], []
        for _ in range(self.months * 8):
            customer = self.rng.choice(data["customers"])
            issued = self._day(span)
            due = issued + timedelta(days=self.rng.choice([15, 30, 45]))
            invoice_id = self._id("inv")

            total = 0.0
            for product in self.rng.sample(data["products"], k=self.rng.randint(1, 3)):
                quantity = self.rng.randint(1, 12)
                line_total = round(quantity * product["unit_price"], 2)
                total += line_total
                items.append({
                    "id": self._id("itm"), "tenant_id": self.tenant_id, "invoice_id": invoice_id,
                    "product_id": product["id"], "category": product["category"], "quantity": quantity,
                    "unit_price": product["unit_price"], "total_amount": line_total,
                    "created_at": self._timestamp(issued),
                })

            if due < self.today - timedelta(days=20):
                status = self.rng.choice(["paid", "paid", "overdue"])
            else:
                status = self.rng.choice(["paid", "sent"])
            invoices.append({
                "id": invoice_id, "tenant_id": self.tenant_id, "invoice_number": f"INV-{len(invoices) + 1:04d}",
                "customer_id": customer["id"], "status": status, "invoice_date": issued, "due_date": due,
                "total_amount": round(total, 2), "total_tax_amount": round(total * self.TAX_RATE, 2),
                "created_at": self._timestamp(issued),
            })
            if status == "paid":
                paid_on = min(issued + timedelta(days=self.rng.randint(3, 40)), self.today)
                payments.append({
                    "id": self._id("pay"), "tenant_id": self.tenant_id, "invoice_id": invoice_id,
                    "payment_method": self.rng.choice(self.PAYMENT_METHODS), "amount": round(total, 2),
                    "payment_date": paid_on, "created_at": self._timestamp(paid_on),
                })

        for _ in range(10):
            created = self._day(30)
            orders.append({
                "id": self._id("so"), "tenant_id": self.tenant_id,
                "customer_id": self.rng.choice(data["customers"])["id"],
                "status": self.rng.choice(["pending", "confirmed", "delivered"]),
                "total_amount": float(self.rng.randint(5, 60) * 500), "created_at": self._timestamp(created),
            })
        for number in range(1, 6):
            created = self._day(30)
            quotations.append({
                "id": self._id("quo"), "tenant_id": self.tenant_id, "quotation_number": f"QUO-{number:04d}",
                "customer_id": self.rng.choice(data["customers"])["id"], "status": "sent",
                "total_amount": float(self.rng.randint(10, 80) * 500),
                "valid_until": created + timedelta(days=30), "created_at": self._timestamp(created),
            })

        data.update(invoices=invoices, invoice_items=items, invoice_payments=payments,
                    sales_orders=orders, quotations=quotations)

    def _purchasing(self, data: dict[str, list[Record]], span: int) -> None:
        bills, items, payments, orders = [], [], [], []
        for _ in range(self.months * 4):
            supplier = self.rng.choice(data["suppliers"])
            issued = self._day(span)
            due = issued + timedelta(days=30)
            bill_id = self._id("bil")

            total = 0.0
            for category in self.rng.sample(self.EXPENSE_CATEGORIES, k=2):
                quantity = self.rng.randint(1, 5)
                unit_price = float(self.rng.randint(4, 40) * 250)
                line_total = quantity * unit_price
                total += line_total
                items.append({
                    "id": self._id("bli"), "tenant_id": self.tenant_id, "bill_id": bill_id,
                    "category": category, "quantity": quantity, "unit_price": unit_price,
                    "total_amount": line_total, "created_at": self._timestamp(issued),
                })

            status = "paid" if self.rng.random() < 0.6 else self.rng.choice(["sent", "overdue"])
            bills.append({
                "id": bill_id, "tenant_id": self.tenant_id, "bill_number": f"BILL-{len(bills) + 1:04d}",
                "supplier_id": supplier["id"], "status": status, "bill_date": issued, "due_date": due,
                "total_amount": total, "created_at": self._timestamp(issued),
            })
            if status == "paid":
                paid_on = min(issued + timedelta(days=self.rng.randint(5, 35)), self.today)
                payments.append({
                    "id": self._id("bpy"), "tenant_id": self.tenant_id, "bill_id": bill_id,
                    "payment_method": self.rng.choice(self.PAYMENT_METHODS), "amount": total,
                    "payment_date": paid_on, "created_at": self._timestamp(paid_on),
                })

        for _ in range(6):
            created = self._day(45)
            orders.append({
                "id": self._id("po"), "tenant_id": self.tenant_id,
                "supplier_id": self.rng.choice(data["suppliers"])["id"],
                "status": self.rng.choice(["draft", "sent", "overdue", "received"]),
                "total_amount": float(self.rng.randint(10, 90) * 400), "created_at": self._timestamp(created),
            })

        data.update(bills=bills, bill_items=items, bill_payments=payments, purchase_orders=orders)

    def _ledgers(self, data: dict[str, list[Record]]) -> None:
        opened = self.today.replace(day=1) - timedelta(days=60)

        def entry(category: str, name: str, amount: float) -> Record:
            return {"id": self._id("led"), "tenant_id": self.tenant_id, "category": category,
                    "name": name, "amount": amount, "entry_date": opened}

        data["assets"] = [
            entry("Current Assets", "Cash at Bank", 420000.0),
            entry("Current Assets", "Inventory", 265000.0),
            entry("Fixed Assets", "Warehouse Equipment", 180000.0),
        ]
        data["liabilities"] = [
            entry("Current Liabilities", "Trade Payables", 145000.0),
            entry("Long-term Liabilities", "Equipment Loan", 120000.0),
        ]
        data["equity"] = [
            entry("Owner's Equity", "Capital", 500000.0),
            entry("Owner's Equity", "Retained Earnings", 100000.0),
        ]

        flows = [
            ("operating", "Customer receipts", 185000.0),
            ("operating", "Supplier payments", -96000.0),
            ("operating", "Salaries", -42000.0),
            ("investing", "Delivery van", -65000.0),
            ("financing", "Loan repayment", -15000.0),
        ]
        items = [
            {"id": self._id("cf"), "tenant_id": self.tenant_id, "type": "operating",
             "description": "Opening balance", "amount": 250000.0, "entry_date": opened}
        ]
        for flow_type, description, amount in flows:
            items.append({"id": self._id("cf"), "tenant_id": self.tenant_id, "type": flow_type,
                          "description": description, "amount": amount,
                          "entry_date": self.today.replace(day=1)})
        data["cash_flow_items"] = items

        data["tax_liabilities"] = [
            {"id": self._id("tax"), "tenant_id": self.tenant_id, "tax_type": tax_type, "amount": amount,
             "due_date": self.today.replace(day=1) + timedelta(days=19), "status": status,
             "created_at": self._timestamp(self.today.replace(day=1))}
            for tax_type, amount, status in [("GST", 38500.0, "pending"), ("TDS", 6200.0, "paid")]
        ]

    def _tracking(self, data: dict[str, list[Record]]) -> None:
        events = []
        for quotation in data["quotations"]:
            recipient = f"buyer{self.rng.randint(1, 4)}@customer.example"
            sent = self._timestamp(self._day(20))
            events.append(self._event(quotation["id"], EngagementEventType.SENT, recipient, sent))
            if self.rng.random() < 0.8:
                events.append(self._event(quotation["id"], EngagementEventType.OPENED, "unknown",
                                          sent + timedelta(hours=self.rng.randint(1, 48))))
            if self.rng.random() < 0.4:
                events.append(self._event(quotation["id"], EngagementEventType.DOWNLOADED, recipient,
                                          sent + timedelta(hours=self.rng.randint(2, 72))))
        data["tracking_events"] = events

    def _event(self, subject_id: str, event_type: EngagementEventType, recipient: str, at: datetime) -> Record:
        return {"event_id": self._id("evt"), "tenant_id": self.tenant_id, "subject_id": subject_id,
                "event_type": event_type.value, "recipient": recipient, "ip_address": "203.0.113.10",
                "user_agent": "Mozilla/5.0", "event_date": at}


def main():
    """Main entry point for demo seeding script."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Seed a Tallyboard DuckDB file with demo data")
    parser.add_argument("--tenant", type=str, default="demo", help="Tenant id to seed (default: demo)")
    parser.add_argument("--months", type=int, default=6, help="Months of history to generate (default: 6)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility (default: 42)")
    parser.add_argument("--db-path", type=str, default=settings.db_path, help="DuckDB file path")
    parser.add_argument("--reset", action="store_true", default=False, help="Delete existing rows first")

    args = parser.parse_args()
    configure_logging()

    logger.info("demo_seeder_started", tenant=args.tenant, months=args.months, seed=args.seed, db_path=args.db_path)

    try:
        source = DuckDBRecordSource(db_path=args.db_path, threads=settings.db_threads)
        if args.reset:
            source.clear_for_testing()

        data = DemoDataGenerator(tenant_id=args.tenant, seed=args.seed, months=args.months).generate()
        for entity, records in data.items():
            source.write_records(entity, records)

        source.close()
    except Exception as e:
        logger.error("demo_seeding_failed", error=str(e), exc_info=True)
        print(f"\nSeeding failed: {e}\n")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("DEMO DATA SEEDED")
    print("=" * 60)
    for entity, records in data.items():
        print(f"  {entity:<20} {len(records):>6}")
    print("=" * 60)
    print(f"\n  Bearer token for tenant '{args.tenant}':\n  {create_access_token(args.tenant)}\n")

    logger.info("demo_seeding_successful", entities=len(data))


if __name__ == "__main__":
    main()
