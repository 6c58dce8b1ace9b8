# Overview: Flask API routes for sales and inventory reports and the dashboard.

"""
Reports API Routes

Sales reports cover the last day / week / month (?period=day|week|month)
and can be downloaded as CSV or PDF. Inventory reports list every part
with its stock status.
"""

from flask import Blueprint, Response, request, jsonify, current_app

from ..decorators import require_auth
from ..errors import RetailError
from ..services import export_service, reporting_service
from ..services.settings_service import get_store_settings

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _period() -> str:
    return (request.args.get("period") or "week").lower()


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    try:
        return jsonify(reporting_service.dashboard_stats())
    except Exception:
        current_app.logger.exception("Failed to load dashboard stats")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sales")
@require_auth
def sales_report_route():
    try:
        return jsonify(reporting_service.sales_summary(_period()))
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sales.csv")
@require_auth
def sales_csv_route():
    try:
        period = _period()
        summary = reporting_service.sales_summary(period)
        return Response(
            reporting_service.sales_csv(summary),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=sales-report-{period}.csv"},
        )
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to export sales CSV")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sales.pdf")
@require_auth
def sales_pdf_route():
    try:
        period = _period()
        summary = reporting_service.sales_summary(period)
        pdf = export_service.sales_report_pdf(summary, get_store_settings())
        return Response(
            pdf,
            mimetype="application/pdf",
            headers={"Content-Disposition": f"attachment; filename=sales-report-{period}.pdf"},
        )
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to export sales PDF")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory")
@require_auth
def inventory_report_route():
    try:
        return jsonify(reporting_service.inventory_summary())
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory.pdf")
@require_auth
def inventory_pdf_route():
    try:
        summary = reporting_service.inventory_summary()
        pdf = export_service.inventory_report_pdf(summary, get_store_settings())
        return Response(
            pdf,
            mimetype="application/pdf",
            headers={"Content-Disposition": "attachment; filename=inventory-report.pdf"},
        )
    except Exception:
        current_app.logger.exception("Failed to export inventory PDF")
        return jsonify({"error": "Internal server error"}), 500
