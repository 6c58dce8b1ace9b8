# Overview: Service-layer operations for sales/inventory reporting and the dashboard.

from __future__ import annotations

import csv
import io
from datetime import datetime, timedelta

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import InventoryItem, PosSale
from ..models.purchasing import PO_PARTIAL, PO_PENDING
from autoparts.time_utils import to_utc_z, utcnow
from .gateway import PersistenceGateway

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30}
PERIOD_LABELS = {"day": "Today", "week": "Last 7 Days", "month": "Last 30 Days"}


def period_start(period: str, now: datetime | None = None) -> datetime:
    if period not in PERIOD_DAYS:
        raise ValidationError("period must be day, week, or month")
    now = now or utcnow()
    return now - timedelta(days=PERIOD_DAYS[period])


def _daily_rows(start: datetime) -> list[dict]:
    day = func.strftime("%Y-%m-%d", PosSale.created_at)
    rows = (
        db.session.query(
            day.label("date"),
            func.coalesce(func.sum(PosSale.total_price_cents), 0).label("total_cents"),
            func.count(func.distinct(PosSale.receipt_number)).label("transactions"),
        )
        .filter(PosSale.created_at >= start)
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [
        {"date": r.date, "total_cents": int(r.total_cents), "transactions": int(r.transactions)}
        for r in rows
    ]


def top_products(start: datetime, limit: int = 5) -> list[dict]:
    rows = (
        db.session.query(
            InventoryItem.id,
            InventoryItem.part_name,
            InventoryItem.part_number,
            func.sum(PosSale.quantity_sold).label("quantity"),
            func.sum(PosSale.total_price_cents).label("revenue_cents"),
        )
        .join(PosSale, PosSale.inventory_id == InventoryItem.id)
        .filter(PosSale.created_at >= start)
        .group_by(InventoryItem.id, InventoryItem.part_name, InventoryItem.part_number)
        .order_by(func.sum(PosSale.quantity_sold).desc(), InventoryItem.part_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "inventory_id": r.id,
            "part_name": r.part_name,
            "part_number": r.part_number,
            "quantity": int(r.quantity or 0),
            "revenue_cents": int(r.revenue_cents or 0),
        }
        for r in rows
    ]


def sales_summary(period: str = "week", *, now: datetime | None = None) -> dict:
    """
    Sales for the last 1 / 7 / 30 days grouped by (UTC) date.

    A transaction is one receipt number; an order's value is the sum of its
    post-discount sale rows (tax is not stored on sales).
    """
    start = period_start(period, now)
    daily = _daily_rows(start)
    total = sum(d["total_cents"] for d in daily)
    transactions = sum(d["transactions"] for d in daily)
    return {
        "period": period,
        "period_label": PERIOD_LABELS[period],
        "start": to_utc_z(start),
        "daily": daily,
        "total_revenue_cents": total,
        "total_transactions": transactions,
        "average_order_value_cents": (total + transactions // 2) // transactions if transactions else 0,
        "top_products": top_products(start),
    }


def sales_csv(summary: dict) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Date", "Total", "Transactions"])
    for row in summary["daily"]:
        writer.writerow([row["date"], f"{row['total_cents'] / 100:.2f}", row["transactions"]])
    return buf.getvalue()


def inventory_summary() -> dict:
    gateway = PersistenceGateway()
    items = gateway.list("inventory", order_by=["part_name", "id"])
    rows = []
    for item in items:
        rows.append({
            "id": item.id,
            "part_number": item.part_number,
            "part_name": item.part_name,
            "brand": item.brand,
            "year_range": item.year_range,
            "category": item.category,
            "quantity": item.quantity,
            "cost_price_cents": item.cost_price_cents,
            "selling_price_cents": item.selling_price_cents,
            "value_cents": item.stock_value_cents,
            "status": "Low Stock" if item.is_low_stock else "OK",
        })
    return {
        "items": rows,
        "total_items": len(rows),
        "total_quantity": sum(r["quantity"] for r in rows),
        "total_value_cents": sum(r["value_cents"] for r in rows),
        "low_stock_count": sum(1 for r in rows if r["status"] == "Low Stock"),
    }


def dashboard_stats(*, now: datetime | None = None) -> dict:
    gateway = PersistenceGateway()
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = today.replace(day=1)

    items = gateway.list("inventory")
    today_sales = gateway.list("pos_sales", created_at__gte=today)
    month_sales = gateway.list("pos_sales", created_at__gte=month_start)
    recent = gateway.list("pos_sales", order_by=["-created_at", "-id"], limit=5)

    low_stock = sorted((i for i in items if i.is_low_stock), key=lambda i: (i.quantity, i.part_name))
    return {
        "total_items": len(items),
        "low_stock_count": len(low_stock),
        "stock_value_cents": sum(i.stock_value_cents for i in items),
        "today_sales_cents": sum(s.total_price_cents for s in today_sales),
        "today_transactions": len({s.receipt_number for s in today_sales}),
        "monthly_revenue_cents": sum(s.total_price_cents for s in month_sales),
        "open_purchase_orders": gateway.count("purchase_orders", status__in=[PO_PENDING, PO_PARTIAL]),
        "customer_count": gateway.count("customers"),
        "recent_sales": [
            dict(
                s.to_dict(),
                part_name=s.item.part_name if s.item else None,
                sold_by_name=s.seller.display_name if s.seller else None,
            )
            for s in recent
        ],
        "low_stock_items": [i.to_dict() for i in low_stock[:5]],
    }
