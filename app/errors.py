"""
app/errors.py
-------------
Domain error taxonomy for the storefront.

Every error carries a user-facing message, a stable machine `code`
and the HTTP status the JSON boundary should answer with. None of
them is fatal: routes catch StorefrontError and report it.
"""


class StorefrontError(Exception):
    """Base class for all recoverable storefront errors."""
    code   = 'storefront_error'
    status = 400
    default_message = 'Something went wrong.'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'error': self.message, 'code': self.code}


# ── Voucher validation ────────────────────────────────────────────

class VoucherError(StorefrontError):
    """Raised when a voucher cannot be applied."""
    code = 'voucher_error'
    status = 422


class EmptyCode(VoucherError):
    code = 'empty_code'
    default_message = 'Please enter a voucher code.'


class NotFoundOrInactive(VoucherError):
    code = 'not_found_or_inactive'
    status = 404
    default_message = 'Voucher code not found or inactive.'


class Expired(VoucherError):
    code = 'expired'
    default_message = 'Voucher has expired.'


class UsageLimitReached(VoucherError):
    code = 'usage_limit_reached'
    default_message = 'Voucher usage limit reached.'


class BelowMinimumPurchase(VoucherError):
    code = 'below_minimum_purchase'

    def __init__(self, min_purchase: int, message: str = None):
        self.min_purchase = min_purchase
        from app.utils.money import format_rupiah
        super().__init__(message or f'Minimum purchase of {format_rupiah(min_purchase)} required.')

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['min_purchase'] = self.min_purchase
        return data


# ── Backend ───────────────────────────────────────────────────────

class BackendUnavailable(StorefrontError):
    code = 'backend_unavailable'
    status = 503
    default_message = 'Database connection not available. Please try again.'


class UsageRecordFailed(StorefrontError):
    code = 'usage_record_failed'
    status = 409
    default_message = 'Voucher could not be redeemed. It was removed from your order.'


# ── Stock ─────────────────────────────────────────────────────────

class StockInsufficient(StorefrontError):
    code = 'stock_insufficient'
    status = 409

    def __init__(self, product_id: str, available: int, message: str = None):
        self.product_id = product_id
        self.available  = available
        super().__init__(message or f'Only {available} items available in stock.')

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(product_id=self.product_id, available=self.available)
        return data


class ItemUnavailable(StorefrontError):
    code = 'item_unavailable'
    status = 409

    def __init__(self, product_id: str, message: str = None):
        self.product_id = product_id
        super().__init__(message or 'This product is no longer available.')

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['product_id'] = self.product_id
        return data


# ── Checkout ──────────────────────────────────────────────────────

class CheckoutError(StorefrontError):
    """Invalid customer details or an empty order."""
    code = 'checkout_error'

    def __init__(self, message: str = None, fields: dict = None):
        self.fields = fields or {}
        super().__init__(message or 'Please fill in all fields.')

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.fields:
            data['fields'] = self.fields
        return data
