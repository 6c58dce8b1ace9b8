# Overview: Receipt and report exports (HTML via Jinja2, PDF via reportlab).

from __future__ import annotations

import io
from xml.sax.saxutils import escape

from flask import render_template
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm, mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..money import bps_to_percent, format_cents
from .checkout_service import Receipt
from .settings_service import StoreSettings

RECEIPT_WIDTH = 80 * mm
PAYMENT_LABELS = {"cash": "Cash", "card": "Card", "mobile": "Mobile", "other": "Other"}

HEADER_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1e3a5f")),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f3f4f6")]),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
]


def _text(value) -> str:
    return escape(str(value)) if value is not None else ""


# =============================================================================
# RECEIPTS
# =============================================================================

def receipt_html(receipt: Receipt) -> str:
    """Print-ready HTML receipt (opened in a new window by the client)."""
    return render_template(
        "receipt.html",
        receipt=receipt,
        money=lambda cents: format_cents(cents, receipt.currency),
        tax_rate=bps_to_percent(receipt.tax_rate_bps),
        payment_label=PAYMENT_LABELS.get(receipt.payment_method, receipt.payment_method),
    )


def receipt_pdf(receipt: Receipt) -> bytes:
    """80mm-wide receipt; page height grows with the number of lines."""
    money = lambda cents: format_cents(cents, receipt.currency)  # noqa: E731

    styles = getSampleStyleSheet()
    center = ParagraphStyle("ReceiptCenter", parent=styles["Normal"], fontSize=8, leading=10, alignment=1)
    title = ParagraphStyle("ReceiptTitle", parent=center, fontName="Helvetica-Bold", fontSize=12, leading=14)
    small = ParagraphStyle("ReceiptSmall", parent=styles["Normal"], fontSize=7, leading=9)
    item_style = ParagraphStyle("ReceiptItem", parent=small, fontName="Helvetica-Bold")

    elements = [Paragraph(_text(receipt.business_name), title)]
    for line in (receipt.business_address, receipt.business_phone, receipt.business_email):
        if line:
            elements.append(Paragraph(_text(line), center))
    elements.append(Spacer(1, 3 * mm))

    issued = receipt.issued_at.strftime("%Y-%m-%d %H:%M") if receipt.issued_at else ""
    meta = [
        ["Receipt:", receipt.receipt_number],
        ["Date:", issued],
        ["Cashier:", receipt.cashier],
        ["Customer:", receipt.customer_name],
    ]
    elements.append(_receipt_table(meta, small))
    elements.append(Spacer(1, 2 * mm))

    item_rows = []
    for line in receipt.lines:
        details = [f"#{line.part_number}"]
        if line.brand:
            details.append(line.brand)
        if line.year_range:
            details.append(line.year_range)
        item_rows.append([
            Paragraph(f"{_text(line.name)}<br/><font size=6>{_text(' | '.join(details))}</font>", item_style),
            Paragraph(f"{line.quantity} x {money(line.unit_price_cents)}", small),
            money(line.line_total_cents),
        ])
    items = Table(item_rows, colWidths=[34 * mm, 20 * mm, 16 * mm])
    items.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), 7),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (2, 0), (2, -1), "RIGHT"),
        ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.lightgrey),
    ]))
    elements.append(items)
    elements.append(Spacer(1, 2 * mm))

    totals = [["Subtotal:", money(receipt.subtotal_cents)]]
    if receipt.discount_cents:
        label = f"Discount ({receipt.discount_code}):" if receipt.discount_code else "Discount:"
        totals.append([label, f"-{money(receipt.discount_cents)}"])
    if receipt.tax_rate_bps:
        totals.append([f"Tax ({bps_to_percent(receipt.tax_rate_bps)}%):", money(receipt.tax_cents)])
    total_row = len(totals)
    totals.append(["TOTAL:", money(receipt.total_cents)])
    totals.append(["Payment:", PAYMENT_LABELS.get(receipt.payment_method, receipt.payment_method)])
    if receipt.amount_tendered_cents is not None:
        totals.append(["Tendered:", money(receipt.amount_tendered_cents)])
        totals.append(["Change:", money(receipt.change_due_cents)])
    totals_table = _receipt_table(totals, small)
    totals_table.setStyle(TableStyle([
        ("FONTNAME", (0, total_row), (-1, total_row), "Helvetica-Bold"),
        ("FONTSIZE", (0, total_row), (-1, total_row), 9),
        ("LINEABOVE", (0, total_row), (-1, total_row), 0.5, colors.black),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 4 * mm))
    elements.append(Paragraph(_text(receipt.footer), center))

    height = (110 + 9 * len(receipt.lines)) * mm
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=(RECEIPT_WIDTH, height),
        leftMargin=5 * mm,
        rightMargin=5 * mm,
        topMargin=5 * mm,
        bottomMargin=5 * mm,
        title=f"Receipt {receipt.receipt_number}",
    )
    doc.build(elements)
    return buffer.getvalue()


def _receipt_table(rows: list[list], style: ParagraphStyle) -> Table:
    table = Table([[k, "" if v is None else str(v)] for k, v in rows], colWidths=[24 * mm, 46 * mm])
    table.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), style.fontSize),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
        ("TOPPADDING", (0, 0), (-1, -1), 1),
    ]))
    return table


# =============================================================================
# REPORTS
# =============================================================================

def sales_report_pdf(summary: dict, settings: StoreSettings) -> bytes:
    """Sales summary with daily breakdown and top products."""
    money = lambda cents: format_cents(cents, settings.currency)  # noqa: E731
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("Title", parent=styles["Heading1"], fontSize=18, spaceAfter=12)

    elements = [
        Paragraph(_text(settings.business_name), title_style),
        Paragraph(f"<b>Sales Report:</b> {_text(summary['period_label'])}", styles["Normal"]),
        Spacer(1, 0.5 * cm),
    ]

    overview = Table(
        [
            ["Total Revenue", "Transactions", "Average Order"],
            [
                money(summary["total_revenue_cents"]),
                str(summary["total_transactions"]),
                money(summary["average_order_value_cents"]),
            ],
        ],
        colWidths=[5.5 * cm] * 3,
    )
    overview.setStyle(TableStyle(HEADER_STYLE + [("ALIGN", (0, 0), (-1, -1), "CENTER")]))
    elements += [overview, Spacer(1, 0.8 * cm)]

    elements.append(Paragraph("Daily Breakdown", styles["Heading2"]))
    daily = [["Date", "Transactions", "Total"]]
    for row in summary["daily"]:
        daily.append([row["date"], str(row["transactions"]), money(row["total_cents"])])
    if len(daily) == 1:
        daily.append(["No sales in this period", "", ""])
    daily_table = Table(daily, colWidths=[6 * cm, 4 * cm, 6 * cm])
    daily_table.setStyle(TableStyle(HEADER_STYLE + [("ALIGN", (1, 0), (-1, -1), "RIGHT")]))
    elements += [daily_table, Spacer(1, 0.8 * cm)]

    if summary.get("top_products"):
        elements.append(Paragraph("Top Products", styles["Heading2"]))
        top = [["Part #", "Part", "Qty", "Revenue"]]
        for p in summary["top_products"]:
            top.append([p["part_number"], p["part_name"][:40], str(p["quantity"]), money(p["revenue_cents"])])
        top_table = Table(top, colWidths=[3.5 * cm, 7.5 * cm, 2 * cm, 3.5 * cm])
        top_table.setStyle(TableStyle(HEADER_STYLE + [("ALIGN", (2, 0), (-1, -1), "RIGHT")]))
        elements.append(top_table)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=2 * cm, bottomMargin=2 * cm, title="Sales Report")
    doc.build(elements)
    return buffer.getvalue()


def inventory_report_pdf(summary: dict, settings: StoreSettings) -> bytes:
    """Per-item inventory table with value and stock status (landscape)."""
    money = lambda cents: format_cents(cents, settings.currency)  # noqa: E731
    styles = getSampleStyleSheet()

    elements = [
        Paragraph(_text(settings.business_name), styles["Heading1"]),
        Paragraph(
            f"<b>Inventory Report</b> | Items: {summary['total_items']} | "
            f"Value: {money(summary['total_value_cents'])} | Low stock: {summary['low_stock_count']}",
            styles["Normal"],
        ),
        Spacer(1, 0.5 * cm),
    ]

    rows = [["Part #", "Name", "Brand", "Year", "Category", "Qty", "Cost", "Price", "Value", "Status"]]
    low_rows = []
    for index, item in enumerate(summary["items"], start=1):
        rows.append([
            item["part_number"],
            item["part_name"][:32],
            item["brand"] or "",
            item["year_range"] or "",
            item["category"] or "",
            str(item["quantity"]),
            money(item["cost_price_cents"]),
            money(item["selling_price_cents"]),
            money(item["value_cents"]),
            item["status"],
        ])
        if item["status"] != "OK":
            low_rows.append(index)

    table = Table(
        rows,
        colWidths=[3 * cm, 6 * cm, 2.8 * cm, 2 * cm, 3 * cm, 1.4 * cm, 2.2 * cm, 2.2 * cm, 2.4 * cm, 2 * cm],
        repeatRows=1,
    )
    style = HEADER_STYLE + [("ALIGN", (5, 0), (8, -1), "RIGHT")]
    for index in low_rows:
        style.append(("TEXTCOLOR", (9, index), (9, index), colors.HexColor("#b91c1c")))
    table.setStyle(TableStyle(style))
    elements.append(table)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), topMargin=1.5 * cm, bottomMargin=1.5 * cm, title="Inventory Report")
    doc.build(elements)
    return buffer.getvalue()
