"""
app/checkout/composer.py
------------------------
Turns the cart, the customer's details and the applied voucher into a
WhatsApp order message.

Checkout is a hand-off, not an order record: nothing here reserves
stock. What it does guarantee:
  1. stock is re-read and the cart reconciled at composition time
  2. the voucher's usage is counted exactly once, and only for a
     checkout that goes on to produce a message
  3. the message body is URL-encoded in full before it enters the link
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

from flask import current_app

from app.cart.store import CartLine, CartStore
from app.errors import BelowMinimumPurchase, CheckoutError, StorefrontError, UsageRecordFailed
from app.inventory.snapshot import read_inventory
from app.utils.money import format_rupiah
from app.vouchers.engine import compute_discount, payable_total, record_usage
from app.vouchers.state import VoucherApplication


WHATSAPP_BASE = 'https://wa.me/'


@dataclass
class CustomerInfo:
    name:            str
    roblox_username: str
    whatsapp:        str
    payment_method:  str

    @classmethod
    def from_mapping(cls, data) -> 'CustomerInfo':
        def clean(key):
            # one line per field: embedded newlines could forge order lines
            return ' '.join(str(data.get(key) or '').split())
        return cls(
            name=clean('name'),
            roblox_username=clean('roblox_username'),
            whatsapp=clean('whatsapp'),
            payment_method=clean('payment_method'),
        )


@dataclass
class CheckoutResult:
    whatsapp_url: str
    message:      str
    lines:        List[CartLine]
    subtotal:     int
    discount:     int
    total:        int
    voucher_code: Optional[str] = None
    notices:      List[StorefrontError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'whatsapp_url': self.whatsapp_url,
            'message':      self.message,
            'lines':        [dict(l.to_dict(), line_total=l.line_total) for l in self.lines],
            'subtotal':     self.subtotal,
            'discount':     self.discount,
            'total':        self.total,
            'voucher_code': self.voucher_code,
            'notices':      [n.to_dict() for n in self.notices],
        }


# ── Customer validation ───────────────────────────────────────────

def validate_customer(customer: CustomerInfo, payment_methods: Sequence[Tuple[str, str]]) -> str:
    """
    Raise CheckoutError listing every bad field.
    Returns the display label of the chosen payment method.
    """
    errors = {}
    if not customer.name:
        errors['name'] = 'Full name is required.'
    if not customer.roblox_username:
        errors['roblox_username'] = 'Roblox username is required.'

    digits = ''.join(ch for ch in customer.whatsapp if ch.isdigit())
    if not customer.whatsapp:
        errors['whatsapp'] = 'WhatsApp number is required.'
    elif len(digits) < 8 or any(ch not in '0123456789+- ' for ch in customer.whatsapp):
        errors['whatsapp'] = 'WhatsApp number looks invalid.'

    labels = dict(payment_methods)
    if not customer.payment_method:
        errors['payment_method'] = 'Please choose a payment method.'
    elif customer.payment_method not in labels:
        errors['payment_method'] = 'Unknown payment method.'

    if errors:
        raise CheckoutError('Please fill in all fields.', fields=errors)
    return labels[customer.payment_method]


# ── Message formatting ────────────────────────────────────────────

def format_order_message(store_name: str, customer: CustomerInfo, payment_label: str,
                         lines: Sequence[CartLine], subtotal: int, discount: int,
                         total: int, voucher_code: str = None) -> str:
    order_details = '\n'.join(
        f"{line.name} x{line.quantity} - {format_rupiah(line.line_total)}" for line in lines
    )

    summary = [f"🧾 Subtotal: {format_rupiah(subtotal)}"]
    if voucher_code:
        summary.append(f"🎟️ Voucher {voucher_code}: -{format_rupiah(discount)}")
    summary.append(f"💰 *Total: {format_rupiah(total)}*")
    summary.append(f"💳 *Payment Method: {payment_label}*")

    return (
        f"🛒 *New Order - {store_name}*\n"
        f"\n"
        f"👤 *Customer Info:*\n"
        f"Name: {customer.name}\n"
        f"Roblox Username: {customer.roblox_username}\n"
        f"WhatsApp: {customer.whatsapp}\n"
        f"\n"
        f"📦 *Order Details:*\n"
        f"{order_details}\n"
        f"\n"
        + '\n'.join(summary) +
        f"\n\nPlease confirm this order and provide payment instructions."
    )


def build_whatsapp_url(number: str, message: str) -> str:
    digits = ''.join(ch for ch in str(number) if ch.isdigit())
    return f"{WHATSAPP_BASE}{digits}?text={quote(message, safe='')}"


# ── Composition ───────────────────────────────────────────────────

def compose_checkout(cart: CartStore, vouchers: VoucherApplication, customer: CustomerInfo, *,
                     store_name: str, whatsapp_number: str,
                     payment_methods: Sequence[Tuple[str, str]]) -> CheckoutResult:
    """
    Validate, reconcile, redeem, format; then clear the cart and voucher.

    Raises:
        CheckoutError        bad customer fields, or nothing left to buy
        BackendUnavailable   stock could not be re-read (cart untouched)
        BelowMinimumPurchase reconciled subtotal no longer meets the
                             applied voucher's minimum (voucher dropped)
        UsageRecordFailed    redemption refused (voucher dropped, cart kept)
    """
    payment_label = validate_customer(customer, payment_methods)

    if cart.is_empty():
        raise CheckoutError('Cart is empty. Add products before checking out.')

    # read before reconcile: cart listeners may drop the voucher on the way
    applied = vouchers.current()
    report  = cart.reconcile(read_inventory(cart.product_ids()))
    lines   = cart.lines()
    if not lines:
        raise CheckoutError('None of the items in your cart are available any more.')
    subtotal = cart.subtotal()

    discount = 0
    code     = None
    if applied is not None:
        snapshot = applied.snapshot
        if subtotal < snapshot.min_purchase:
            vouchers.remove()
            raise BelowMinimumPurchase(snapshot.min_purchase)
        discount = compute_discount(snapshot, subtotal)
        code     = snapshot.code
        try:
            record_usage(snapshot.id)
        except UsageRecordFailed:
            vouchers.remove()
            raise

    total   = payable_total(subtotal, discount)
    message = format_order_message(store_name, customer, payment_label,
                                   lines, subtotal, discount, total, code)
    url     = build_whatsapp_url(whatsapp_number, message)

    cart.clear()
    vouchers.remove()

    current_app.logger.info(
        f"Checkout composed: {len(lines)} line(s) | Subtotal: {subtotal} | "
        f"Voucher: {code or '-'} | Total: {total}"
    )
    return CheckoutResult(
        whatsapp_url=url, message=message, lines=lines,
        subtotal=subtotal, discount=discount, total=total,
        voucher_code=code, notices=list(report.notices),
    )
