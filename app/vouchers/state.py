"""
app/vouchers/state.py
---------------------
Per-session voucher application state.

    Unapplied ──validate ok──▶ Applied(snapshot, discount)
    Applied ──remove / checkout completed / usage failed──▶ Unapplied

Applying only validates and remembers. Usage is counted later, when
the checkout completes (see app/checkout/composer.py).
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import MutableMapping, Optional

from app.vouchers.engine import VoucherSnapshot, compute_discount, validate_voucher


APPLIED_KEY = 'applied_voucher'


@dataclass(frozen=True)
class AppliedVoucher:
    snapshot: VoucherSnapshot
    discount: int

    def to_dict(self) -> dict:
        return {'voucher': self.snapshot.to_dict(), 'discount': self.discount}


class VoucherApplication:
    """Reads and writes the applied voucher held in `storage`."""

    def __init__(self, storage: MutableMapping, key: str = APPLIED_KEY):
        self._storage = storage
        self._key     = key

    def current(self) -> Optional[AppliedVoucher]:
        raw = self._storage.get(self._key)
        if not raw:
            return None
        try:
            return AppliedVoucher(
                snapshot=VoucherSnapshot.from_dict(raw['voucher']),
                discount=int(raw['discount']),
            )
        except (KeyError, TypeError, ValueError):
            self.remove()   # unreadable state counts as Unapplied
            return None

    @property
    def is_applied(self) -> bool:
        return self.current() is not None

    def apply(self, code: str, subtotal: int, now: datetime = None) -> AppliedVoucher:
        """
        Validate `code` and enter Applied. Any previously applied voucher
        is dropped first, so a failed attempt always leaves Unapplied.
        """
        self.remove()
        snapshot = validate_voucher(code, subtotal, now=now)
        applied  = AppliedVoucher(snapshot=snapshot, discount=compute_discount(snapshot, subtotal))
        self._write(applied)
        return applied

    def refresh(self, subtotal: int) -> Optional[AppliedVoucher]:
        """
        Recompute the held discount for a changed subtotal. Only the
        minimum purchase is re-checked: below it the voucher is dropped.
        """
        applied = self.current()
        if applied is None:
            return None
        if subtotal < applied.snapshot.min_purchase:
            self.remove()
            return None
        refreshed = AppliedVoucher(applied.snapshot, compute_discount(applied.snapshot, subtotal))
        self._write(refreshed)
        return refreshed

    def remove(self) -> None:
        if self._key in self._storage:
            self._storage.pop(self._key, None)
            if hasattr(self._storage, 'modified'):
                self._storage.modified = True

    def _write(self, applied: AppliedVoucher) -> None:
        self._storage[self._key] = applied.to_dict()
        if hasattr(self._storage, 'modified'):
            self._storage.modified = True
