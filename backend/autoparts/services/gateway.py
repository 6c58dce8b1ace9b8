# Overview: Persistence gateway; table-level CRUD over the SQLAlchemy session.

"""
Persistence Gateway

Every core service (checkout, refunds, receiving, identifiers...) talks to
the database through this class instead of reaching for db.session. That
keeps three things in one place:

- the table registry (string table name -> model)
- the transaction boundary (`with gateway.transaction(): ...`)
- translation of SQLAlchemyError into PersistenceError

Filters are keyword arguments. A bare column name is an equality test;
suffixes select other comparisons:

    gateway.list("pos_sales", receipt_number="RCP-...")
    gateway.list("inventory", quantity__lte=3, order_by="part_name")
    gateway.list("activity_logs", created_at__gte=start, order_by="-created_at")

Writes only flush. Nothing is committed until the outermost
transaction() block exits cleanly; any exception rolls everything back.
"""

from __future__ import annotations

from contextlib import contextmanager
from functools import wraps

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFound, PersistenceError
from ..extensions import db
from ..models import (
    ActivityLog,
    Category,
    Customer,
    Discount,
    DocumentSequence,
    InventoryItem,
    PosSale,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseReceipt,
    SessionToken,
    Setting,
    Supplier,
    User,
)


TABLES = {
    "inventory": InventoryItem,
    "categories": Category,
    "suppliers": Supplier,
    "customers": Customer,
    "discounts": Discount,
    "pos_sales": PosSale,
    "purchase_orders": PurchaseOrder,
    "purchase_order_items": PurchaseOrderItem,
    "purchase_receipts": PurchaseReceipt,
    "settings": Setting,
    "activity_logs": ActivityLog,
    "document_sequences": DocumentSequence,
    "users": User,
    "session_tokens": SessionToken,
}

_OPERATORS = {
    "eq": lambda col, v: col == v,
    "ne": lambda col, v: col != v,
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "in": lambda col, v: col.in_(list(v)),
    "ilike": lambda col, v: col.ilike(f"%{v}%"),
    "isnull": lambda col, v: col.is_(None) if v else col.isnot(None),
}


def _wrap_errors(func):
    """Convert driver/ORM failures into PersistenceError for the caller."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                "Database operation failed",
                details={"operation": func.__name__, "reason": exc.__class__.__name__},
            ) from exc
    return wrapper


class PersistenceGateway:
    """Generic CRUD and filtered queries over named tables."""

    def __init__(self, session=None):
        self._session = session
        self._depth = 0

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ------------------------------------------------------------------
    # Registry / filters
    # ------------------------------------------------------------------

    @staticmethod
    def model_for(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}")

    def _conditions(self, model, filters: dict) -> list:
        conditions = []
        for key, value in filters.items():
            name, _, op = key.partition("__")
            op = op or "eq"
            if op not in _OPERATORS:
                raise ValueError(f"Unsupported filter operator: {op}")
            column = getattr(model, name, None)
            if column is None:
                raise ValueError(f"{model.__tablename__} has no column {name}")
            conditions.append(_OPERATORS[op](column, value))
        return conditions

    def _query(self, table: str, filters: dict, order_by=None, for_update: bool = False):
        model = self.model_for(table)
        query = self.session.query(model)
        conditions = self._conditions(model, filters)
        if conditions:
            query = query.filter(and_(*conditions))
        for key in _as_list(order_by):
            desc = key.startswith("-")
            column = getattr(model, key.lstrip("-"))
            query = query.order_by(column.desc() if desc else column.asc())
        if for_update:
            # SQLite ignores SELECT ... FOR UPDATE, other engines honor it
            query = query.with_for_update()
        return query

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self):
        """
        Unit of work. Nested blocks join the outermost one; only the
        outermost commits. Any exception rolls back and propagates.
        """
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(
                "Database transaction failed",
                details={"reason": exc.__class__.__name__},
            ) from exc
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth -= 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @_wrap_errors
    def get(self, table: str, *, for_update: bool = False, **filters):
        """First row matching filters, or None."""
        return self._query(table, filters, for_update=for_update).first()

    def require(self, table: str, *, message: str | None = None, **filters):
        row = self.get(table, **filters)
        if row is None:
            raise NotFound(message or f"{table} record not found", details={"filters": _jsonable(filters)})
        return row

    @_wrap_errors
    def list(self, table: str, *, order_by=None, limit: int | None = None, offset: int | None = None, **filters):
        query = self._query(table, filters, order_by=order_by)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    @_wrap_errors
    def count(self, table: str, **filters) -> int:
        return self._query(table, filters).count()

    @_wrap_errors
    def search(self, table: str, text: str, columns: list[str], *, order_by=None, limit: int | None = None, **filters):
        """Case-insensitive substring match across several columns, ANDed with filters."""
        model = self.model_for(table)
        query = self._query(table, filters, order_by=order_by)
        if text:
            query = query.filter(or_(*[getattr(model, c).ilike(f"%{text}%") for c in columns]))
        if limit:
            query = query.limit(limit)
        return query.all()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @_wrap_errors
    def insert(self, table: str, values: dict):
        row = self.model_for(table)(**values)
        self.session.add(row)
        self.session.flush()
        return row

    @_wrap_errors
    def update(self, table: str, row_id: int, values: dict):
        row = self.session.get(self.model_for(table), row_id)
        if row is None:
            raise NotFound(f"{table} record {row_id} not found")
        for key, value in values.items():
            setattr(row, key, value)
        self.session.flush()
        return row

    @_wrap_errors
    def delete(self, table: str, **filters) -> int:
        if not filters:
            raise ValueError("Refusing to delete without a filter")
        rows = self._query(table, filters).all()
        for row in rows:
            self.session.delete(row)
        self.session.flush()
        return len(rows)

    # ------------------------------------------------------------------
    # Conditional (compare-and-swap) updates
    # ------------------------------------------------------------------

    @_wrap_errors
    def adjust_stock(self, item_id: int, delta: int) -> bool:
        """
        quantity += delta in a single UPDATE. A decrement only applies when
        enough stock remains (quantity >= -delta). Returns False when no row
        matched: item missing, or not enough stock.
        """
        conditions = [InventoryItem.id == item_id]
        if delta < 0:
            conditions.append(InventoryItem.quantity >= -delta)
        stmt = (
            update(InventoryItem)
            .where(*conditions)
            .values(
                quantity=InventoryItem.quantity + delta,
                version_id=InventoryItem.version_id + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return bool(result.rowcount)

    @_wrap_errors
    def increment_discount_usage(self, discount_id: int) -> bool:
        """used_count += 1 unless that would pass max_uses."""
        stmt = (
            update(Discount)
            .where(
                Discount.id == discount_id,
                or_(Discount.max_uses.is_(None), Discount.used_count < Discount.max_uses),
            )
            .values(used_count=Discount.used_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return bool(result.rowcount)

    @_wrap_errors
    def increment_received(self, order_item_id: int, quantity: int) -> bool:
        """quantity_received += quantity unless that would pass quantity_ordered."""
        stmt = (
            update(PurchaseOrderItem)
            .where(
                PurchaseOrderItem.id == order_item_id,
                PurchaseOrderItem.quantity_received + quantity <= PurchaseOrderItem.quantity_ordered,
            )
            .values(quantity_received=PurchaseOrderItem.quantity_received + quantity)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return bool(result.rowcount)


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _jsonable(filters: dict) -> dict:
    return {k: v if isinstance(v, (int, str, float, bool, type(None))) else str(v) for k, v in filters.items()}
