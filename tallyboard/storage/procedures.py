"""
Server-side procedures for the DuckDB record source.

Each procedure computes a pre-aggregated result for one tenant and returns
plain mappings shaped the way the decoders in ``tallyboard.storage.decoders``
expect. Procedures are looked up by name in PROCEDURES; every one accepts an
optional ``today`` so period windows are reproducible.
"""

from datetime import date, timedelta
from typing import Any, Callable, Optional

import duckdb

ProcedureFn = Callable[..., Any]

STATEMENT_SECTIONS = ("assets", "liabilities", "equity")
CASH_FLOW_TYPES = ("operating", "investing", "financing")
OPEN_STATUSES = ("sent", "overdue")


def rows_as_dicts(cursor: duckdb.DuckDBPyConnection) -> list[dict]:
    """Materialize the cursor's result set as a list of dicts."""
    names = [column[0] for column in cursor.description]
    return [dict(zip(names, row)) for row in cursor.fetchall()]


def _query(conn: duckdb.DuckDBPyConnection, sql: str, params: list) -> list[dict]:
    return rows_as_dicts(conn.execute(sql, params))


def _scalar(conn: duckdb.DuckDBPyConnection, sql: str, params: list) -> Any:
    row = conn.execute(sql, params).fetchone()
    return row[0] if row else None


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _add_months(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def period_bounds(period: str, today: date) -> tuple[date, date]:
    """
    Resolve a named period to ``[start, end)`` around ``today``.

    Accepts the statement periods (month, quarter, year) and the tax report
    periods (current, previous, year).
    """
    if period in ("month", "current"):
        start = _month_start(today)
        return start, _add_months(start, 1)
    if period == "previous":
        start = _add_months(_month_start(today), -1)
        return start, _add_months(start, 1)
    if period == "quarter":
        start = date(today.year, 3 * ((today.month - 1) // 3) + 1, 1)
        return start, _add_months(start, 3)
    if period == "year":
        return date(today.year, 1, 1), date(today.year + 1, 1, 1)
    raise ValueError(f"Unsupported period: {period}")


def _today(today: Optional[date]) -> date:
    return today or date.today()


# =============================================================================
# Dashboard
# =============================================================================


def get_distribution_metrics(conn, tenant_id: str, days: int = 30, today: Optional[date] = None) -> dict:
    since = _today(today) - timedelta(days=int(days))
    sales = _query(
        conn,
        """
        SELECT
            COALESCE(SUM(ii.total_amount), 0) AS total_revenue,
            COUNT(DISTINCT i.id) AS total_orders
        FROM invoices i
        JOIN invoice_items ii ON ii.invoice_id = i.id AND ii.tenant_id = i.tenant_id
        WHERE i.tenant_id = ? AND CAST(i.created_at AS DATE) >= ?
        """,
        [tenant_id, since],
    )[0]
    orders = sales["total_orders"] or 0
    revenue = sales["total_revenue"] or 0.0

    pending = _scalar(
        conn,
        "SELECT COUNT(*) FROM sales_orders WHERE tenant_id = ? AND status = 'pending'",
        [tenant_id],
    )
    low_stock = _scalar(
        conn,
        "SELECT COUNT(*) FROM products WHERE tenant_id = ? AND stock_quantity <= reorder_level",
        [tenant_id],
    )
    return {
        "total_revenue": revenue,
        "total_orders": orders,
        "average_order_value": revenue / orders if orders else 0.0,
        "pending_orders": pending or 0,
        "low_stock_items": low_stock or 0,
    }


def get_top_customers(
    conn, tenant_id: str, limit_count: int = 5, days: int = 30, today: Optional[date] = None
) -> list[dict]:
    since = _today(today) - timedelta(days=int(days))
    return _query(
        conn,
        """
        SELECT
            c.name AS name,
            COUNT(DISTINCT i.id) AS total_orders,
            COALESCE(SUM(ii.total_amount), 0) AS total_revenue
        FROM customers c
        JOIN invoices i ON i.customer_id = c.id AND i.tenant_id = c.tenant_id
        LEFT JOIN invoice_items ii ON ii.invoice_id = i.id AND ii.tenant_id = i.tenant_id
        WHERE c.tenant_id = ? AND CAST(i.created_at AS DATE) >= ?
        GROUP BY c.id, c.name
        ORDER BY total_revenue DESC, c.name
        LIMIT ?
        """,
        [tenant_id, since, int(limit_count)],
    )


def get_top_products(
    conn, tenant_id: str, limit_count: int = 5, days: int = 30, today: Optional[date] = None
) -> list[dict]:
    since = _today(today) - timedelta(days=int(days))
    return _query(
        conn,
        """
        SELECT
            p.name AS name,
            COALESCE(p.category, 'Uncategorized') AS category,
            CAST(COALESCE(SUM(ii.quantity), 0) AS INTEGER) AS total_quantity,
            COALESCE(SUM(ii.total_amount), 0) AS total_revenue
        FROM products p
        JOIN invoice_items ii ON ii.product_id = p.id AND ii.tenant_id = p.tenant_id
        JOIN invoices i ON i.id = ii.invoice_id AND i.tenant_id = ii.tenant_id
        WHERE p.tenant_id = ? AND CAST(i.created_at AS DATE) >= ?
        GROUP BY p.id, p.name, p.category
        ORDER BY total_revenue DESC, p.name
        LIMIT ?
        """,
        [tenant_id, since, int(limit_count)],
    )


def get_sales_trend(conn, tenant_id: str, days_count: int = 30, today: Optional[date] = None) -> list[dict]:
    """Daily revenue and order count for the last ``days_count`` days, zero-filled."""
    end = _today(today)
    start = end - timedelta(days=int(days_count) - 1)
    rows = _query(
        conn,
        """
        SELECT
            CAST(i.created_at AS DATE) AS day,
            COALESCE(SUM(ii.total_amount), 0) AS revenue,
            COUNT(DISTINCT i.id) AS orders
        FROM invoices i
        LEFT JOIN invoice_items ii ON ii.invoice_id = i.id AND ii.tenant_id = i.tenant_id
        WHERE i.tenant_id = ? AND CAST(i.created_at AS DATE) BETWEEN ? AND ?
        GROUP BY CAST(i.created_at AS DATE)
        """,
        [tenant_id, start, end],
    )
    by_day = {row["day"]: row for row in rows}

    series = []
    day = start
    while day <= end:
        row = by_day.get(day, {})
        series.append({"date": day, "revenue": row.get("revenue", 0.0), "orders": row.get("orders", 0)})
        day += timedelta(days=1)
    return series


# =============================================================================
# Financial overview
# =============================================================================


def get_financial_metrics(conn, tenant_id: str, today: Optional[date] = None) -> dict:
    month_start, month_end = period_bounds("month", _today(today))
    sales = _query(
        conn,
        """
        SELECT
            COALESCE(SUM(CASE WHEN status = 'paid' THEN total_amount ELSE 0 END), 0) AS total_revenue,
            COALESCE(SUM(CASE WHEN status IN (?, ?) THEN total_amount ELSE 0 END), 0) AS total_receivables,
            COALESCE(SUM(CASE WHEN status = 'paid'
                               AND CAST(created_at AS DATE) >= ? AND CAST(created_at AS DATE) < ?
                              THEN total_amount ELSE 0 END), 0) AS total_sales_this_month
        FROM invoices
        WHERE tenant_id = ?
        """,
        [*OPEN_STATUSES, month_start, month_end, tenant_id],
    )[0]
    purchases = _query(
        conn,
        """
        SELECT
            COALESCE(SUM(CASE WHEN status IN (?, ?) THEN total_amount ELSE 0 END), 0) AS total_payables,
            COALESCE(SUM(CASE WHEN CAST(created_at AS DATE) >= ? AND CAST(created_at AS DATE) < ?
                              THEN total_amount ELSE 0 END), 0) AS total_purchases_this_month
        FROM purchase_orders
        WHERE tenant_id = ?
        """,
        [*OPEN_STATUSES, month_start, month_end, tenant_id],
    )[0]
    return {**sales, **purchases}


def _payment_stats(conn, table: str, tenant_id: str) -> list[dict]:
    return _query(
        conn,
        f"""
        SELECT
            COALESCE(payment_method, 'unknown') AS payment_method,
            COUNT(*) AS payment_count,
            COALESCE(SUM(amount), 0) AS total_amount
        FROM {table}
        WHERE tenant_id = ?
        GROUP BY COALESCE(payment_method, 'unknown')
        ORDER BY total_amount DESC, payment_method
        """,
        [tenant_id],
    )


def get_payment_stats(conn, tenant_id: str, today: Optional[date] = None) -> list[dict]:
    return _payment_stats(conn, "invoice_payments", tenant_id)


def get_bill_payment_stats(conn, tenant_id: str, today: Optional[date] = None) -> list[dict]:
    return _payment_stats(conn, "bill_payments", tenant_id)


def get_payment_periods(conn, tenant_id: str, today: Optional[date] = None) -> dict:
    """Average days from document date to payment, for invoices and bills."""
    collection = _scalar(
        conn,
        """
        SELECT AVG(date_diff('day', i.invoice_date, ip.payment_date))
        FROM invoice_payments ip
        JOIN invoices i ON i.id = ip.invoice_id AND i.tenant_id = ip.tenant_id
        WHERE ip.tenant_id = ?
        """,
        [tenant_id],
    )
    payment = _scalar(
        conn,
        """
        SELECT AVG(date_diff('day', b.bill_date, bp.payment_date))
        FROM bill_payments bp
        JOIN bills b ON b.id = bp.bill_id AND b.tenant_id = bp.tenant_id
        WHERE bp.tenant_id = ?
        """,
        [tenant_id],
    )
    return {
        "average_collection_period": round(collection) if collection is not None else 0,
        "average_payment_period": round(payment) if payment is not None else 0,
    }


# =============================================================================
# Statements
# =============================================================================


def _breakdown(conn, header: str, items: str, key: str, tenant_id: str, start: date, end: date) -> list[dict]:
    return _query(
        conn,
        f"""
        SELECT
            COALESCE(it.category, 'Uncategorized') AS category,
            COALESCE(SUM(it.quantity * it.unit_price), 0) AS amount
        FROM {header} h
        JOIN {items} it ON it.{key} = h.id AND it.tenant_id = h.tenant_id
        WHERE h.tenant_id = ? AND h.status = 'paid'
          AND CAST(h.created_at AS DATE) >= ? AND CAST(h.created_at AS DATE) < ?
        GROUP BY COALESCE(it.category, 'Uncategorized')
        ORDER BY category
        """,
        [tenant_id, start, end],
    )


def _paid_total(conn, table: str, tenant_id: str, start: date, end: date) -> float:
    return _scalar(
        conn,
        f"""
        SELECT COALESCE(SUM(total_amount), 0)
        FROM {table}
        WHERE tenant_id = ? AND status = 'paid'
          AND CAST(created_at AS DATE) >= ? AND CAST(created_at AS DATE) < ?
        """,
        [tenant_id, start, end],
    )


def get_profit_loss_report(conn, tenant_id: str, time_period: str = "month", today: Optional[date] = None) -> dict:
    start, end = period_bounds(time_period, _today(today))
    return {
        "total_revenue": _paid_total(conn, "invoices", tenant_id, start, end),
        "total_expenses": _paid_total(conn, "bills", tenant_id, start, end),
        "revenue_breakdown": _breakdown(conn, "invoices", "invoice_items", "invoice_id", tenant_id, start, end),
        "expense_breakdown": _breakdown(conn, "bills", "bill_items", "bill_id", tenant_id, start, end),
    }


def get_balance_sheet(conn, tenant_id: str, as_of_date: Any = None, today: Optional[date] = None) -> dict:
    as_of = as_of_date or _today(today)
    sheet: dict[str, list[dict]] = {}
    for section in STATEMENT_SECTIONS:
        rows = _query(
            conn,
            f"""
            SELECT COALESCE(category, 'Uncategorized') AS category, name, amount
            FROM {section}
            WHERE tenant_id = ? AND entry_date <= CAST(? AS DATE)
            ORDER BY rowid
            """,
            [tenant_id, as_of],
        )
        categories: dict[str, list[dict]] = {}
        for row in rows:
            categories.setdefault(row["category"], []).append({"name": row["name"], "amount": row["amount"]})
        sheet[section] = [{"category": name, "items": items} for name, items in categories.items()]
    return sheet


def get_cash_flow_statement(conn, tenant_id: str, time_period: str = "month", today: Optional[date] = None) -> dict:
    start, end = period_bounds(time_period, _today(today))
    statement: dict[str, Any] = {}
    for activity in CASH_FLOW_TYPES:
        items = _query(
            conn,
            """
            SELECT COALESCE(description, '') AS description, amount
            FROM cash_flow_items
            WHERE tenant_id = ? AND type = ? AND entry_date >= ? AND entry_date < ?
            ORDER BY entry_date, rowid
            """,
            [tenant_id, activity, start, end],
        )
        statement[f"{activity}_activities"] = {
            "category": f"{activity.title()} Activities",
            "items": items,
        }
    statement["beginning_cash"] = _scalar(
        conn,
        "SELECT COALESCE(SUM(amount), 0) FROM cash_flow_items WHERE tenant_id = ? AND entry_date < ?",
        [tenant_id, start],
    )
    return statement


def get_tax_reports(conn, tenant_id: str, report_period: str = "current", today: Optional[date] = None) -> dict:
    start, end = period_bounds(report_period, _today(today))
    monthly = _query(
        conn,
        """
        SELECT
            date_trunc('month', CAST(created_at AS DATE)) AS month,
            COALESCE(SUM(total_tax_amount), 0) AS collected,
            COALESCE(SUM(CASE WHEN status = 'paid' THEN total_tax_amount ELSE 0 END), 0) AS paid,
            COALESCE(SUM(CASE WHEN status != 'paid' THEN total_tax_amount ELSE 0 END), 0) AS net_payable
        FROM invoices
        WHERE tenant_id = ? AND CAST(created_at AS DATE) >= ? AND CAST(created_at AS DATE) < ?
        GROUP BY 1
        ORDER BY 1
        """,
        [tenant_id, start, end],
    )
    liabilities = _query(
        conn,
        """
        SELECT tax_type AS type, amount, due_date, status
        FROM tax_liabilities
        WHERE tenant_id = ? AND CAST(created_at AS DATE) >= ? AND CAST(created_at AS DATE) < ?
        ORDER BY due_date NULLS LAST, rowid
        """,
        [tenant_id, start, end],
    )
    return {
        "gst_summary": [
            {
                "period": row["month"].strftime("%B %Y"),
                "collected": row["collected"],
                "paid": row["paid"],
                "net_payable": row["net_payable"],
            }
            for row in monthly
        ],
        "tax_liability": liabilities,
    }


PROCEDURES: dict[str, ProcedureFn] = {
    "get_distribution_metrics": get_distribution_metrics,
    "get_top_customers": get_top_customers,
    "get_top_products": get_top_products,
    "get_sales_trend": get_sales_trend,
    "get_financial_metrics": get_financial_metrics,
    "get_payment_stats": get_payment_stats,
    "get_bill_payment_stats": get_bill_payment_stats,
    "get_payment_periods": get_payment_periods,
    "get_profit_loss_report": get_profit_loss_report,
    "get_balance_sheet": get_balance_sheet,
    "get_cash_flow_statement": get_cash_flow_statement,
    "get_tax_reports": get_tax_reports,
}
