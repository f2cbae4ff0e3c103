"""
app/inventory/snapshot.py
-------------------------
Read-only stock / availability snapshots for a set of product ids.

Snapshots are stale the moment they are returned: nothing here locks
rows, and checkout never commits stock. Callers re-read right before
they need fresh numbers.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable

from sqlalchemy import true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import defer

from app import db
from app.errors import BackendUnavailable
from app.inventory.models import Product
from app.schema import get_capabilities


@dataclass(frozen=True)
class InventoryRecord:
    product_id:   str
    stock_count:  int
    is_available: bool = True


def _normalise_ids(product_ids: Iterable) -> list:
    ids = []
    for pid in product_ids:
        try:
            ids.append(int(pid))
        except (TypeError, ValueError):
            continue   # not one of ours; it simply won't appear in the snapshot
    return ids


def read_inventory(product_ids: Iterable) -> Dict[str, InventoryRecord]:
    """
    Fetch stock and availability for `product_ids`.

    Returns a dict keyed by the string product id. Ids with no product
    row are absent from the result. Raises BackendUnavailable when the
    database cannot be reached.
    """
    ids = _normalise_ids(product_ids)
    if not ids:
        return {}

    has_flag = get_capabilities().products_is_available
    columns  = [Product.id, Product.stock]
    if has_flag:
        columns.append(Product.is_available)

    try:
        rows = db.session.query(*columns).filter(Product.id.in_(ids)).all()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise BackendUnavailable() from exc

    snapshot = {}
    for row in rows:
        available = True
        if has_flag and row.is_available is False:
            available = False
        snapshot[str(row.id)] = InventoryRecord(
            product_id=str(row.id),
            stock_count=max(int(row.stock or 0), 0),
            is_available=available,
        )
    return snapshot


def read_one(product_id) -> InventoryRecord | None:
    return read_inventory([product_id]).get(str(product_id))


# ── Catalog query helpers ─────────────────────────────────────────

def availability_clause():
    """SQL filter keeping only purchasable products (unknown counts as yes)."""
    if get_capabilities().products_is_available:
        return Product.is_available.isnot(False)
    return true()


def product_query():
    """Product query that never selects columns the schema lacks."""
    query = Product.query
    if not get_capabilities().products_is_available:
        query = query.options(defer(Product.is_available, raiseload=True))
    return query


def is_available(product) -> bool:
    """Availability of a loaded Product, honouring the schema flag."""
    if not get_capabilities().products_is_available:
        return True
    return product.is_available is not False
