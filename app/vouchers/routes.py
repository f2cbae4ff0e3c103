"""
app/vouchers/routes.py
----------------------
Applying a voucher validates it against the current cart subtotal and
remembers the result in the session. Usage is NOT counted here; that
happens once, when checkout completes.
"""
from datetime import datetime

from flask import request, jsonify, current_app
from sqlalchemy import or_

from app.cart.routes import cart_payload
from app.cart.session import get_cart_store, get_voucher_application
from app.errors import VoucherError, BackendUnavailable
from app.utils.money import format_rupiah
from app.vouchers import vouchers
from app.vouchers.engine import normalise_code
from app.vouchers.models import Voucher


# ── Apply ─────────────────────────────────────────────────────────

@vouchers.route('/apply', methods=['POST'])
def apply():
    data  = request.get_json(silent=True) or request.form
    code  = data.get('code', '')
    store = get_cart_store()

    try:
        applied = get_voucher_application().apply(code, store.subtotal())
    except (VoucherError, BackendUnavailable) as exc:
        current_app.logger.info(f"Voucher rejected ({normalise_code(code) or '<empty>'}): {exc.code}")
        raise

    current_app.logger.info(f"Voucher applied: {applied.snapshot.code} | Discount: {applied.discount}")
    payload = cart_payload(store)
    payload['message'] = (f'Voucher "{applied.snapshot.code}" applied! '
                          f'You saved {format_rupiah(applied.discount)}')
    return jsonify(payload)


# ── Remove / inspect ──────────────────────────────────────────────

@vouchers.route('/applied', methods=['DELETE'])
def remove():
    get_voucher_application().remove()
    payload = cart_payload(get_cart_store())
    payload['message'] = 'Voucher removed'
    return jsonify(payload)


@vouchers.route('/applied')
def applied():
    current = get_voucher_application().current()
    if current is None:
        return jsonify({'voucher': None, 'discount': 0})
    return jsonify(dict(current.to_dict(), label=current.snapshot.label))


# ── Featured (banner) ─────────────────────────────────────────────

@vouchers.route('/featured')
def featured():
    return jsonify([v.to_dict() for v in get_featured_vouchers()])


def get_featured_vouchers(limit: int = None, now: datetime = None):
    """
    Active, unexpired vouchers with the largest discount_value first,
    minus any that have reached their usage limit.
    """
    limit = limit or current_app.config.get('FEATURED_VOUCHER_LIMIT', 3)
    now   = now or datetime.utcnow()
    rows  = (
        Voucher.query
        .filter(
            Voucher.is_active.is_(True),
            or_(Voucher.valid_until.is_(None), Voucher.valid_until >= now),
        )
        .order_by(Voucher.discount_value.desc(), Voucher.id.asc())
        .limit(limit)
        .all()
    )
    return [v for v in rows if not v.is_used_up]
