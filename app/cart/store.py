"""
app/cart/store.py
-----------------
The shopping cart as an explicit store object.

Cart structure kept in the backing storage (the Flask session in the
web app, a plain dict in tests) under key 'cart':
[
    {
        "product_id": str,
        "name":       str,
        "unit_price": int,    ← whole Rupiah
        "image_ref":  str,
        "quantity":   int     ← always > 0
    },
    ...
]

A list keeps insertion order; product_id is unique within it. Every
mutation writes the whole list back and then notifies subscribers.
The store itself never talks to the database: stock checks arrive as
InventoryRecord snapshots from the caller.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Callable, List, Mapping, MutableMapping, Optional

from app.errors import ItemUnavailable, StockInsufficient, StorefrontError


CART_KEY = 'cart'

Listener = Callable[[str, 'CartStore'], None]


@dataclass
class CartLine:
    product_id: str
    name:       str
    unit_price: int
    image_ref:  str
    quantity:   int

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> Optional['CartLine']:
        try:
            line = cls(
                product_id=str(raw['product_id']),
                name=str(raw.get('name', '')),
                unit_price=int(raw.get('unit_price', 0)),
                image_ref=str(raw.get('image_ref') or ''),
                quantity=int(raw.get('quantity', 0)),
            )
        except (KeyError, TypeError, ValueError):
            return None
        if line.quantity <= 0 or line.unit_price < 0:
            return None
        return line


@dataclass
class ReconcileReport:
    """What a reconciliation (or guarded quantity change) did to the cart."""
    clamped: List[tuple] = field(default_factory=list)   # (product_id, old_qty, new_qty)
    removed: List[str]   = field(default_factory=list)
    notices: List[StorefrontError] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.clamped or self.removed)

    def messages(self) -> List[dict]:
        return [n.to_dict() for n in self.notices]


class CartStore:
    """
    Ordered collection of CartLines persisted to `storage[key]`.

    Constructed when a session starts using it and torn down with
    close(); consumers receive the instance rather than importing
    module state.
    """

    def __init__(self, storage: MutableMapping, key: str = CART_KEY):
        self._storage   = storage
        self._key       = key
        self._listeners: List[Listener] = []

    # ── Observers ─────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener(event, store)`; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def close(self) -> None:
        self._listeners.clear()

    # ── Read ──────────────────────────────────────────────────────

    def lines(self) -> List[CartLine]:
        raw = self._storage.get(self._key) or []
        lines = []
        seen  = set()
        for item in raw:
            line = CartLine.from_dict(item) if isinstance(item, dict) else None
            if line is None or line.product_id in seen:
                continue
            seen.add(line.product_id)
            lines.append(line)
        return lines

    def get(self, product_id) -> Optional[CartLine]:
        pid = str(product_id)
        for line in self.lines():
            if line.product_id == pid:
                return line
        return None

    def product_ids(self) -> List[str]:
        return [line.product_id for line in self.lines()]

    def is_empty(self) -> bool:
        return not self.lines()

    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines())

    def subtotal(self) -> int:
        """sum(unit_price × quantity) over all lines."""
        return sum(line.line_total for line in self.lines())

    def to_dict(self) -> dict:
        lines = self.lines()
        return {
            'lines':      [dict(l.to_dict(), line_total=l.line_total) for l in lines],
            'item_count': sum(l.quantity for l in lines),
            'subtotal':   sum(l.line_total for l in lines),
        }

    # ── Write ─────────────────────────────────────────────────────

    def add_item(self, product_id, name: str, unit_price: int,
                 image_ref: str = '', quantity: int = 1) -> CartLine:
        """
        Add `quantity` units. An existing line for the same product is
        incremented; otherwise a new line is appended.
        """
        quantity   = int(quantity)
        unit_price = int(unit_price)
        if quantity <= 0:
            raise ValueError('Quantity to add must be positive.')
        if unit_price < 0:
            raise ValueError('Unit price cannot be negative.')

        pid   = str(product_id)
        lines = self.lines()
        for line in lines:
            if line.product_id == pid:
                line.quantity += quantity
                self._save(lines, 'add')
                return line

        line = CartLine(product_id=pid, name=name, unit_price=unit_price,
                        image_ref=image_ref or '', quantity=quantity)
        lines.append(line)
        self._save(lines, 'add')
        return line

    def update_quantity(self, product_id, new_quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        new_quantity = int(new_quantity)
        if new_quantity <= 0:
            self.remove_item(product_id)
            return

        pid   = str(product_id)
        lines = self.lines()
        for line in lines:
            if line.product_id == pid:
                line.quantity = new_quantity
                self._save(lines, 'update')
                return

    def remove_item(self, product_id) -> None:
        pid   = str(product_id)
        lines = self.lines()
        kept  = [line for line in lines if line.product_id != pid]
        if len(kept) != len(lines):
            self._save(kept, 'remove')

    def clear(self) -> None:
        self._save([], 'clear')

    # ── Stock reconciliation ──────────────────────────────────────

    def change_quantity(self, product_id, new_quantity: int, record) -> ReconcileReport:
        """
        Guarded quantity edit against a fresh InventoryRecord.
        Unavailable or vanished products are removed; requests above
        stock are clamped to what is left.
        """
        report = ReconcileReport()
        pid    = str(product_id)
        line   = self.get(pid)
        if line is None:
            return report

        if record is None or not record.is_available:
            self.remove_item(pid)
            report.removed.append(pid)
            report.notices.append(ItemUnavailable(pid))
            return report

        new_quantity = int(new_quantity)
        if new_quantity > record.stock_count:
            report.notices.append(StockInsufficient(pid, record.stock_count))
            new_quantity = record.stock_count
            if new_quantity <= 0:
                report.removed.append(pid)
            else:
                report.clamped.append((pid, line.quantity, new_quantity))
        elif new_quantity <= 0:
            report.removed.append(pid)

        self.update_quantity(pid, new_quantity)
        return report

    def reconcile(self, inventory: Mapping[str, object]) -> ReconcileReport:
        """
        Bring every line in line with `inventory` (product_id → InventoryRecord).

        quantity becomes min(quantity, stock_count); unavailable, missing
        and sold-out products are dropped. One write, one notification.
        """
        report = ReconcileReport()
        kept   = []

        for line in self.lines():
            record = inventory.get(line.product_id)
            if record is None or not record.is_available:
                report.removed.append(line.product_id)
                report.notices.append(ItemUnavailable(
                    line.product_id,
                    f'"{line.name}" is no longer available and was removed from your cart.',
                ))
                continue

            if line.quantity > record.stock_count:
                if record.stock_count <= 0:
                    report.removed.append(line.product_id)
                    report.notices.append(StockInsufficient(
                        line.product_id, 0, f'"{line.name}" is out of stock and was removed from your cart.',
                    ))
                    continue
                report.clamped.append((line.product_id, line.quantity, record.stock_count))
                report.notices.append(StockInsufficient(
                    line.product_id, record.stock_count,
                    f'Only {record.stock_count} of "{line.name}" available in stock.',
                ))
                line.quantity = record.stock_count

            kept.append(line)

        if report.changed:
            self._save(kept, 'reconcile')
        return report

    # ── Internals ─────────────────────────────────────────────────

    def _save(self, lines: List[CartLine], event: str) -> None:
        self._storage[self._key] = [line.to_dict() for line in lines]
        if hasattr(self._storage, 'modified'):
            self._storage.modified = True
        for listener in list(self._listeners):
            listener(event, self)

