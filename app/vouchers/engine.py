"""
app/vouchers/engine.py
----------------------
Voucher validation, discount computation and usage recording.

validate_voucher() only reads. compute_discount() and payable_total()
are pure. record_usage() is the single write: an atomic, conditional
increment done by the database, never a client-side `used_count + 1`.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.errors import (
    BackendUnavailable, BelowMinimumPurchase, EmptyCode, Expired,
    NotFoundOrInactive, UsageLimitReached, UsageRecordFailed,
)
from app.utils.money import format_rupiah, to_units
from app.vouchers.models import Voucher


@dataclass(frozen=True)
class VoucherSnapshot:
    """Voucher fields as they were when it was validated."""
    id:             int
    code:           str
    name:           str
    description:    str
    discount_type:  str
    discount_value: Decimal
    min_purchase:   int = 0
    max_discount:   Optional[int] = None
    usage_limit:    Optional[int] = None
    used_count:     int = 0
    is_active:      bool = True
    valid_until:    Optional[datetime] = None

    @classmethod
    def from_model(cls, voucher: Voucher) -> 'VoucherSnapshot':
        return cls(
            id=voucher.id,
            code=voucher.code,
            name=voucher.name,
            description=voucher.description or '',
            discount_type=voucher.discount_type,
            discount_value=Decimal(str(voucher.discount_value)),
            min_purchase=voucher.min_purchase or 0,
            max_discount=voucher.max_discount,
            usage_limit=voucher.usage_limit,
            used_count=voucher.used_count or 0,
            is_active=bool(voucher.is_active),
            valid_until=voucher.valid_until,
        )

    def to_dict(self) -> dict:
        """JSON-safe form, suitable for the session cookie."""
        return {
            'id':             self.id,
            'code':           self.code,
            'name':           self.name,
            'description':    self.description,
            'discount_type':  self.discount_type,
            'discount_value': str(self.discount_value),
            'min_purchase':   self.min_purchase,
            'max_discount':   self.max_discount,
            'usage_limit':    self.usage_limit,
            'used_count':     self.used_count,
            'is_active':      self.is_active,
            'valid_until':    self.valid_until.isoformat() if self.valid_until else None,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> 'VoucherSnapshot':
        valid_until = raw.get('valid_until')
        return cls(
            id=int(raw['id']),
            code=raw['code'],
            name=raw.get('name', ''),
            description=raw.get('description', ''),
            discount_type=raw['discount_type'],
            discount_value=Decimal(str(raw['discount_value'])),
            min_purchase=int(raw.get('min_purchase') or 0),
            max_discount=raw.get('max_discount'),
            usage_limit=raw.get('usage_limit'),
            used_count=int(raw.get('used_count') or 0),
            is_active=bool(raw.get('is_active', True)),
            valid_until=datetime.fromisoformat(valid_until) if valid_until else None,
        )

    @property
    def label(self) -> str:
        """'10% OFF' or 'Rp 20.000 OFF'."""
        if self.discount_type == 'percentage':
            return f"{self.discount_value.normalize():f}% OFF"
        return f"{format_rupiah(self.discount_value)} OFF"


def normalise_code(code) -> str:
    return (code or '').strip().upper()


# ── Validation ────────────────────────────────────────────────────

def validate_voucher(code: str, subtotal: int, now: datetime = None) -> VoucherSnapshot:
    """
    Check `code` against `subtotal`. Checks run in a fixed order and the
    first failure is raised:

        1. empty code                     → EmptyCode
        2. no active voucher with code    → NotFoundOrInactive
        3. valid_until in the past        → Expired
        4. used_count >= usage_limit      → UsageLimitReached
        5. subtotal < min_purchase        → BelowMinimumPurchase

    Returns a VoucherSnapshot on success. A database failure raises
    BackendUnavailable. Nothing is written.
    """
    normalised = normalise_code(code)
    if not normalised:
        raise EmptyCode()

    try:
        voucher = Voucher.query.filter_by(code=normalised, is_active=True).first()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise BackendUnavailable() from exc

    if voucher is None:
        raise NotFoundOrInactive()

    now = now or datetime.utcnow()
    if voucher.valid_until is not None and voucher.valid_until < now:
        raise Expired()

    if voucher.usage_limit is not None and (voucher.used_count or 0) >= voucher.usage_limit:
        raise UsageLimitReached()

    min_purchase = voucher.min_purchase or 0
    if subtotal < min_purchase:
        raise BelowMinimumPurchase(min_purchase)

    return VoucherSnapshot.from_model(voucher)


# ── Discount ──────────────────────────────────────────────────────

def compute_discount(voucher, subtotal: int) -> int:
    """
    Discount in whole Rupiah, never above `subtotal`.

      percentage → subtotal × value / 100, capped at max_discount if set
      fixed      → min(value, subtotal)

    Rounded half-up to whole units.
    """
    subtotal = max(int(subtotal), 0)
    value    = Decimal(str(voucher.discount_value))

    if voucher.discount_type == 'percentage':
        raw = Decimal(subtotal) * value / Decimal('100')
        if voucher.max_discount is not None:
            raw = min(raw, Decimal(voucher.max_discount))
    elif voucher.discount_type == 'fixed':
        raw = min(value, Decimal(subtotal))
    else:
        raise ValueError(f'Unknown discount type {voucher.discount_type!r}')

    discount = to_units(raw)
    return min(max(discount, 0), subtotal)


def payable_total(subtotal: int, discount: int) -> int:
    return max(0, int(subtotal) - int(discount))


# ── Usage ─────────────────────────────────────────────────────────

def record_usage(voucher_id: int) -> None:
    """
    Count one redemption of `voucher_id`.

    The increment happens inside the UPDATE statement and only matches
    a row that is still active and below its usage limit, so two
    concurrent checkouts can never push used_count past usage_limit.
    One attempt only: a retry could count the same checkout twice.

    Raises UsageRecordFailed if no row was updated or the database errored.
    """
    stmt = (
        update(Voucher)
        .where(
            Voucher.id == voucher_id,
            Voucher.is_active.is_(True),
            or_(Voucher.usage_limit.is_(None), Voucher.used_count < Voucher.usage_limit),
        )
        .values(used_count=Voucher.used_count + 1)
        .execution_options(synchronize_session=False)
    )

    try:
        result = db.session.execute(stmt)
        updated = result.rowcount
        if updated != 1:
            db.session.rollback()
        else:
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"Voucher usage increment failed (ID {voucher_id}): {exc}")
        raise UsageRecordFailed() from exc

    if updated != 1:
        current_app.logger.warning(f"Voucher usage rejected (ID {voucher_id}): inactive or limit reached")
        raise UsageRecordFailed()

    current_app.logger.info(f"Voucher usage recorded (ID {voucher_id})")
