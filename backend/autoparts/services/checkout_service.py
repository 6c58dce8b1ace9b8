# Overview: Service-layer operations for POS checkout; orchestrates the sale commit and receipt.

"""
Checkout Orchestrator

One CheckoutOrchestrator instance handles one checkout attempt:

    IDLE -> VALIDATING -> COMMITTING -> RECEIPTED
                 \\             \\
                  +-> FAILED <--+

VALIDATING re-derives subtotal / discount / tax / total from the cart with
the same pure functions the cart and discount resolver expose, and re-checks
the discount code against the current subtotal.

COMMITTING runs as a single database transaction:
  - allocate one receipt number for the whole checkout
  - per cart line, in order: insert a pos_sales row with the line's
    pro-rated share of the discount, then decrement stock with a
    conditional UPDATE (fails with InsufficientStock if another sale
    got there first)
  - increment the discount's used_count exactly once
  - write the activity log row
Any failure rolls back every step; nothing is half-committed.

RECEIPTED assembles the Receipt view model. It is a pure projection of what
was committed and is not persisted beyond the pos_sales rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum

from ..errors import (
    DiscountUsageExceeded,
    InsufficientStock,
    NotFound,
    StateError,
    ValidationError,
)
from ..models import Discount, PosSale
from ..models.sales import PAYMENT_METHODS
from ..money import apply_bps
from ..validation import parse_int
from autoparts.time_utils import to_utc_z, utcnow
from .activity_service import log_activity
from .cart import Cart, ItemSnapshot
from .discount_service import apply_discount, compute_amount
from .gateway import PersistenceGateway
from .identifier_service import next_receipt_number
from .settings_service import StoreSettings, get_store_settings

WALK_IN_CUSTOMER = "Walk-in Customer"


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    COMMITTING = "committing"
    RECEIPTED = "receipted"
    FAILED = "failed"


# =============================================================================
# PURE CALCULATIONS
# =============================================================================

@dataclass(frozen=True)
class CheckoutTotals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int

    @property
    def net_cents(self) -> int:
        """Subtotal after discount, before tax. Equals the sum of sale rows."""
        return self.subtotal_cents - self.discount_cents


def compute_totals(cart: Cart, discount: Discount | None = None, tax_rate_bps: int = 0) -> CheckoutTotals:
    subtotal = cart.subtotal_cents()
    discount_cents = compute_amount(discount, subtotal)
    tax = apply_bps(subtotal - discount_cents, tax_rate_bps)
    return CheckoutTotals(
        subtotal_cents=subtotal,
        discount_cents=discount_cents,
        tax_cents=tax,
        total_cents=subtotal - discount_cents + tax,
    )


def prorate_discount(line_totals: list[int], discount_cents: int) -> list[int]:
    """
    Split an order-level discount across lines in proportion to each line's
    share of the subtotal. Shares are rounded to the cent and the last line
    absorbs the rounding remainder, so the shares always sum to
    discount_cents and no share exceeds its line total.
    """
    subtotal = sum(line_totals)
    if not line_totals or discount_cents <= 0 or subtotal <= 0:
        return [0] * len(line_totals)

    shares = []
    allocated = 0
    for line_total in line_totals[:-1]:
        share = min(line_total, (discount_cents * line_total * 2 + subtotal) // (2 * subtotal))
        shares.append(share)
        allocated += share
    remainder = discount_cents - allocated
    shares.append(min(line_totals[-1], max(0, remainder)))

    # Remainder larger than the last line (only possible with tiny last lines):
    # push the excess back onto earlier lines that still have headroom.
    excess = remainder - shares[-1]
    i = 0
    while excess > 0 and i < len(shares) - 1:
        room = line_totals[i] - shares[i]
        take = min(room, excess)
        shares[i] += take
        excess -= take
        i += 1
    return shares


# =============================================================================
# RECEIPT VIEW MODEL
# =============================================================================

@dataclass
class ReceiptLine:
    inventory_id: int
    name: str
    part_number: str
    brand: str | None
    year_range: str | None
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    discount_cents: int = 0


@dataclass
class Receipt:
    receipt_number: str
    issued_at: datetime
    business_name: str
    business_address: str
    business_phone: str
    business_email: str
    currency: str
    footer: str
    customer_name: str
    cashier: str
    payment_method: str
    lines: list[ReceiptLine] = field(default_factory=list)
    subtotal_cents: int = 0
    discount_cents: int = 0
    discount_code: str | None = None
    tax_rate_bps: int = 0
    tax_cents: int = 0
    total_cents: int = 0
    amount_tendered_cents: int | None = None
    change_due_cents: int | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["issued_at"] = to_utc_z(self.issued_at)
        return data


def build_receipt(
    *,
    receipt_number: str,
    issued_at: datetime,
    settings: StoreSettings,
    lines: list[ReceiptLine],
    totals: CheckoutTotals,
    cashier: str,
    customer_name: str | None,
    payment_method: str,
    discount_code: str | None = None,
    amount_tendered_cents: int | None = None,
) -> Receipt:
    change_due = None
    if amount_tendered_cents is not None:
        change_due = max(0, amount_tendered_cents - totals.total_cents)
    return Receipt(
        receipt_number=receipt_number,
        issued_at=issued_at,
        business_name=settings.business_name,
        business_address=settings.business_address,
        business_phone=settings.business_phone,
        business_email=settings.business_email,
        currency=settings.currency,
        footer=settings.receipt_footer,
        customer_name=customer_name or WALK_IN_CUSTOMER,
        cashier=cashier,
        payment_method=payment_method,
        lines=lines,
        subtotal_cents=totals.subtotal_cents,
        discount_cents=totals.discount_cents,
        discount_code=discount_code if totals.discount_cents else None,
        tax_rate_bps=settings.tax_rate_bps,
        tax_cents=totals.tax_cents,
        total_cents=totals.total_cents,
        amount_tendered_cents=amount_tendered_cents,
        change_due_cents=change_due,
    )


# =============================================================================
# CART <-> DATABASE
# =============================================================================

def build_cart(lines: list[dict], *, gateway: PersistenceGateway | None = None) -> Cart:
    """
    Build a cart from [{"inventory_id": .., "quantity": ..}] using the
    current stock as the snapshot. Same checks as adding in the UI.
    Several lines for one item are merged and their quantities summed.
    """
    gateway = gateway or PersistenceGateway()
    if not isinstance(lines, list):
        raise ValidationError("lines must be a list")

    requested: dict[int, int] = {}
    for index, raw in enumerate(lines):
        if not isinstance(raw, dict) or "inventory_id" not in raw:
            raise ValidationError(f"Line {index + 1} needs an inventory_id")
        item_id = parse_int(raw["inventory_id"], f"Line {index + 1} inventory_id", minimum=1)
        quantity = parse_int(raw.get("quantity", 1), f"Line {index + 1} quantity", minimum=1)
        requested[item_id] = requested.get(item_id, 0) + quantity

    cart = Cart()
    for item_id, quantity in requested.items():
        item = gateway.get("inventory", id=item_id)
        if item is None:
            raise NotFound("Inventory item not found", details={"inventory_id": item_id})
        cart.add_line(ItemSnapshot.from_item(item))
        if quantity != 1:
            cart.change_quantity(item_id, absolute=quantity)
    return cart


def revalidate_cart(cart: Cart, *, gateway: PersistenceGateway | None = None) -> list[dict]:
    """
    Refresh every line's stock snapshot from the database and clamp lines
    that no longer fit. Used after resuming a held order. Returns one issue
    per line that changed; an empty list means the cart is still valid.
    """
    gateway = gateway or PersistenceGateway()
    issues = []
    for line in list(cart.lines):
        requested = line.quantity
        item = gateway.get("inventory", id=line.item.id)
        available = item.quantity if item is not None else 0
        kept = cart.refresh_stock(line.item.id, available)
        if kept < requested:
            issues.append({
                "inventory_id": line.item.id,
                "part_name": line.item.part_name,
                "requested": requested,
                "available": available,
                "quantity": kept,
                "removed": kept == 0,
                "reason": "deleted" if item is None else "insufficient_stock",
            })
    return issues


def revalidate_customer(customer_id: int | None, *, gateway: PersistenceGateway | None = None) -> dict | None:
    """Issue entry when a parked order's customer record is gone, else None."""
    if customer_id is None:
        return None
    gateway = gateway or PersistenceGateway()
    if gateway.get("customers", id=customer_id) is not None:
        return None
    return {"customer_id": customer_id, "reason": "customer_deleted"}


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class CheckoutOrchestrator:
    """Runs one checkout attempt; see module docstring for the state machine."""

    def __init__(self, *, gateway: PersistenceGateway | None = None, settings: StoreSettings | None = None):
        self.gateway = gateway or PersistenceGateway()
        self.settings = settings
        self.state = CheckoutState.IDLE
        self.error: Exception | None = None
        self.receipt: Receipt | None = None

    def checkout(
        self,
        cart: Cart,
        *,
        cashier,
        discount_code: str | None = None,
        customer_id: int | None = None,
        customer_name: str | None = None,
        payment_method: str = "cash",
        amount_tendered_cents: int | None = None,
    ) -> Receipt:
        if self.state != CheckoutState.IDLE:
            raise StateError(f"Checkout already {self.state.value}")

        try:
            self.state = CheckoutState.VALIDATING
            settings = self.settings or get_store_settings()
            discount, totals, customer_label = self._validate(
                cart,
                discount_code=discount_code,
                customer_id=customer_id,
                customer_name=customer_name,
                payment_method=payment_method,
                amount_tendered_cents=amount_tendered_cents,
                settings=settings,
            )

            self.state = CheckoutState.COMMITTING
            receipt_number, issued_at, receipt_lines = self._commit(
                cart,
                cashier=cashier,
                discount=discount,
                totals=totals,
                customer_id=customer_id,
                customer_label=customer_label,
                payment_method=payment_method,
            )
        except Exception as exc:
            self.state = CheckoutState.FAILED
            self.error = exc
            raise

        self.receipt = build_receipt(
            receipt_number=receipt_number,
            issued_at=issued_at,
            settings=settings,
            lines=receipt_lines,
            totals=totals,
            cashier=cashier.display_name,
            customer_name=customer_label,
            payment_method=payment_method,
            discount_code=discount.code if discount else None,
            amount_tendered_cents=amount_tendered_cents,
        )
        self.state = CheckoutState.RECEIPTED
        return self.receipt

    def _validate(
        self,
        cart: Cart,
        *,
        discount_code,
        customer_id,
        customer_name,
        payment_method,
        amount_tendered_cents,
        settings: StoreSettings,
    ):
        if cart.is_empty():
            raise ValidationError("Cart is empty")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

        for line in cart.lines:
            if line.quantity <= 0 or line.quantity > line.item.quantity:
                raise InsufficientStock(
                    "Insufficient stock",
                    details={"inventory_id": line.item.id, "available": line.item.quantity, "requested": line.quantity},
                )

        discount = None
        if discount_code:
            discount = apply_discount(discount_code, cart.subtotal_cents(), gateway=self.gateway)

        customer_label = (customer_name or "").strip() or None
        if customer_id is not None:
            customer = self.gateway.get("customers", id=customer_id)
            if customer is None:
                raise NotFound("Customer not found", details={"customer_id": customer_id})
            customer_label = customer.name

        totals = compute_totals(cart, discount, settings.tax_rate_bps)

        if amount_tendered_cents is not None:
            if amount_tendered_cents < totals.total_cents:
                raise ValidationError(
                    "Amount tendered is less than the total",
                    details={"total_cents": totals.total_cents, "amount_tendered_cents": amount_tendered_cents},
                )
        return discount, totals, customer_label

    def _commit(self, cart: Cart, *, cashier, discount, totals: CheckoutTotals, customer_id, customer_label, payment_method):
        gateway = self.gateway
        line_totals = [line.line_total_cents for line in cart.lines]
        shares = prorate_discount(line_totals, totals.discount_cents)
        issued_at = utcnow()
        receipt_lines: list[ReceiptLine] = []

        with gateway.transaction():
            receipt_number = next_receipt_number(gateway=gateway)

            for line, share in zip(cart.lines, shares):
                gateway.insert("pos_sales", {
                    "receipt_number": receipt_number,
                    "inventory_id": line.item.id,
                    "quantity_sold": line.quantity,
                    "unit_price_cents": line.item.unit_price_cents,
                    "total_price_cents": line.line_total_cents - share,
                    "customer_id": customer_id,
                    "customer_name": customer_label,
                    "discount_id": discount.id if discount else None,
                    "discount_amount_cents": share,
                    "payment_method": payment_method,
                    "sold_by": cashier.id,
                    "created_at": issued_at,
                })
                if not gateway.adjust_stock(line.item.id, -line.quantity):
                    current = gateway.get("inventory", id=line.item.id)
                    raise InsufficientStock(
                        f"Insufficient stock for {line.item.part_name}",
                        details={
                            "inventory_id": line.item.id,
                            "available": current.quantity if current else 0,
                            "requested": line.quantity,
                        },
                    )
                receipt_lines.append(ReceiptLine(
                    inventory_id=line.item.id,
                    name=line.item.part_name,
                    part_number=line.item.part_number,
                    brand=line.item.brand,
                    year_range=line.item.year_range,
                    quantity=line.quantity,
                    unit_price_cents=line.item.unit_price_cents,
                    line_total_cents=line.line_total_cents,
                    discount_cents=share,
                ))

            if discount is not None:
                if not gateway.increment_discount_usage(discount.id):
                    raise DiscountUsageExceeded(
                        "Discount code usage limit reached",
                        details={"code": discount.code},
                    )

            log_activity(
                user=cashier,
                action="sale",
                entity_type="pos_sale",
                entity_id=receipt_number,
                details={
                    "receipt_number": receipt_number,
                    "items": cart.item_count(),
                    "total_cents": totals.total_cents,
                    "discount_code": discount.code if discount else None,
                },
                gateway=gateway,
            )

        return receipt_number, issued_at, receipt_lines


def checkout(cart: Cart, *, cashier, **kwargs) -> Receipt:
    """Convenience wrapper: one orchestrator, one attempt."""
    return CheckoutOrchestrator().checkout(cart, cashier=cashier, **kwargs)


# =============================================================================
# RECEIPT LOOKUP
# =============================================================================

def load_receipt(receipt_number: str, *, settings: StoreSettings | None = None) -> Receipt:
    """
    Rebuild the receipt of a completed sale from its pos_sales rows.

    Tax is recomputed with the current tax rate; the rows store only the
    post-discount line totals.
    """
    gateway = PersistenceGateway()
    rows: list[PosSale] = gateway.list("pos_sales", receipt_number=receipt_number, order_by="id")
    if not rows:
        raise NotFound(f"No sale found for receipt {receipt_number}")

    settings = settings or get_store_settings()
    lines = []
    for row in rows:
        item = row.item
        lines.append(ReceiptLine(
            inventory_id=row.inventory_id,
            name=item.part_name if item else f"Item #{row.inventory_id}",
            part_number=item.part_number if item else "",
            brand=item.brand if item else None,
            year_range=item.year_range if item else None,
            quantity=row.quantity_sold,
            unit_price_cents=row.unit_price_cents,
            line_total_cents=row.line_total_cents,
            discount_cents=row.discount_amount_cents or 0,
        ))

    subtotal = sum(line.line_total_cents for line in lines)
    discount_cents = sum(line.discount_cents for line in lines)
    tax = apply_bps(subtotal - discount_cents, settings.tax_rate_bps)
    totals = CheckoutTotals(
        subtotal_cents=subtotal,
        discount_cents=discount_cents,
        tax_cents=tax,
        total_cents=subtotal - discount_cents + tax,
    )
    first = rows[0]
    return build_receipt(
        receipt_number=receipt_number,
        issued_at=first.created_at,
        settings=settings,
        lines=lines,
        totals=totals,
        cashier=first.seller.display_name if first.seller else "unknown",
        customer_name=first.customer.name if first.customer else first.customer_name,
        payment_method=first.payment_method,
        discount_code=first.discount.code if first.discount else None,
    )
