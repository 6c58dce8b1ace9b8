from datetime import timedelta

from sqlalchemy import update

from autoparts.extensions import db
from autoparts.models import PosSale
from autoparts.services import checkout_service, export_service, reporting_service
from autoparts.services.settings_service import get_store_settings
from autoparts.time_utils import utcnow


def _sell(staff, item, quantity, **kwargs):
    cart = checkout_service.build_cart([{"inventory_id": item.id, "quantity": quantity}])
    return checkout_service.checkout(cart, cashier=staff, **kwargs)


def test_sales_summary_groups_by_receipt(staff, make_item):
    a = make_item(part_name="Oil Filter", selling_price_cents=1000, quantity=20)
    b = make_item(part_name="Air Filter", selling_price_cents=500, quantity=20)
    _sell(staff, a, 3)
    cart = checkout_service.build_cart([
        {"inventory_id": a.id, "quantity": 1},
        {"inventory_id": b.id, "quantity": 2},
    ])
    checkout_service.checkout(cart, cashier=staff)

    summary = reporting_service.sales_summary("week")

    assert summary["period_label"] == "Last 7 Days"
    assert summary["total_revenue_cents"] == 5000
    assert summary["total_transactions"] == 2
    assert summary["average_order_value_cents"] == 2500
    assert summary["top_products"][0]["part_name"] == "Oil Filter"
    assert summary["top_products"][0]["quantity"] == 4


def test_old_sales_fall_out_of_period(staff, make_item):
    item = make_item(quantity=10)
    receipt = _sell(staff, item, 1)
    db.session.execute(
        update(PosSale)
        .where(PosSale.receipt_number == receipt.receipt_number)
        .values(created_at=utcnow() - timedelta(days=10))
    )
    db.session.commit()

    assert reporting_service.sales_summary("week")["total_transactions"] == 0
    assert reporting_service.sales_summary("month")["total_transactions"] == 1


def test_sales_csv(staff, make_item):
    item = make_item(selling_price_cents=1250, quantity=10)
    _sell(staff, item, 2)
    summary = reporting_service.sales_summary("day")

    lines = reporting_service.sales_csv(summary).splitlines()
    assert lines[0] == "Date,Total,Transactions"
    assert lines[1].endswith(",25.00,1")


def test_inventory_summary_and_dashboard(staff, make_item, customer):
    make_item(quantity=1, reorder_level=5, cost_price_cents=100)
    item = make_item(quantity=10, reorder_level=2, cost_price_cents=200, selling_price_cents=1000)
    _sell(staff, item, 1)

    summary = reporting_service.inventory_summary()
    statuses = sorted(row["status"] for row in summary["items"])
    assert statuses == ["Low Stock", "OK"]

    stats = reporting_service.dashboard_stats()
    assert stats["total_items"] == 2
    assert stats["low_stock_count"] == 1
    assert stats["stock_value_cents"] == 1 * 100 + 9 * 200
    assert stats["today_sales_cents"] == 1000
    assert stats["today_transactions"] == 1
    assert stats["customer_count"] == 1
    assert len(stats["recent_sales"]) == 1


def test_report_pdfs_render(app, staff, make_item):
    item = make_item(quantity=10)
    _sell(staff, item, 2)

    sales_pdf = export_service.sales_report_pdf(reporting_service.sales_summary("week"), get_store_settings())
    inventory_pdf = export_service.inventory_report_pdf(reporting_service.inventory_summary(), get_store_settings())
    assert sales_pdf.startswith(b"%PDF")
    assert inventory_pdf.startswith(b"%PDF")


def test_report_endpoints(client, staff_headers, staff, make_item):
    item = make_item(quantity=10)
    _sell(staff, item, 1)

    assert client.get("/api/reports/sales?period=year", headers=staff_headers).status_code == 400
    assert client.get("/api/reports/sales?period=month", headers=staff_headers).get_json()["total_transactions"] == 1

    resp = client.get("/api/reports/sales.csv?period=week", headers=staff_headers)
    assert resp.mimetype == "text/csv"
    assert "sales-report-week.csv" in resp.headers["Content-Disposition"]

    resp = client.get("/api/reports/inventory.pdf", headers=staff_headers)
    assert resp.data.startswith(b"%PDF")

    resp = client.get("/api/reports/dashboard", headers=staff_headers)
    assert resp.get_json()["today_transactions"] == 1
