"""
app/vouchers/validators.py
--------------------------
Validation and parsing for admin voucher payloads.
"""
import secrets
import string
from datetime import datetime
from decimal import Decimal, InvalidOperation

from app.vouchers.models import DISCOUNT_TYPE_CHOICES


CODE_ALPHABET = string.ascii_uppercase + string.digits
TRUTHY = ('1', 'true', 'on', 'yes', True, 1)


def generate_voucher_code(length: int = 8) -> str:
    """Random upper-case alphanumeric code, e.g. 'K7Q2ZP0A'."""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def _text(value) -> str:
    return '' if value is None else str(value).strip()


def _decimal(raw: str) -> Decimal:
    """Decimal(raw), rejecting NaN and Infinity with InvalidOperation."""
    value = Decimal(raw)
    if not value.is_finite():
        raise InvalidOperation(raw)
    return value


def _parse_datetime(raw: str) -> datetime:
    """Accept '2026-12-31' or a full ISO timestamp; stored naive UTC."""
    value = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    if value.tzinfo is not None:
        value = (value - value.utcoffset()).replace(tzinfo=None)
    return value


def validate_voucher_form(form_data: dict, partial: bool = False) -> dict:
    """Return {field: error}; empty when the payload is acceptable."""
    errors = {}

    if not partial or 'code' in form_data:
        code = _text(form_data.get('code'))
        if not code:
            errors['code'] = 'Voucher code is required.'
        elif len(code) > 50:
            errors['code'] = 'Voucher code must be 50 characters or fewer.'
        elif any(ch.isspace() for ch in code):
            errors['code'] = 'Voucher code cannot contain spaces.'

    if not partial or 'name' in form_data:
        if not _text(form_data.get('name')):
            errors['name'] = 'Voucher name is required.'

    discount_type = _text(form_data.get('discount_type') or 'percentage')
    if not partial or 'discount_type' in form_data:
        if discount_type not in DISCOUNT_TYPE_CHOICES:
            errors['discount_type'] = 'Invalid discount type.'

    if not partial or 'discount_value' in form_data:
        raw = _text(form_data.get('discount_value'))
        if not raw:
            errors['discount_value'] = 'Discount value is required.'
        else:
            try:
                value = _decimal(raw)
                if value <= 0:
                    errors['discount_value'] = 'Discount value must be greater than zero.'
                elif discount_type == 'percentage' and value > 100:
                    errors['discount_value'] = 'Percentage discount cannot exceed 100.'
            except InvalidOperation:
                errors['discount_value'] = 'Discount value must be a valid number.'

    for field, label in (('min_purchase', 'Minimum purchase'),
                         ('max_discount', 'Maximum discount'),
                         ('usage_limit',  'Usage limit')):
        raw = _text(form_data.get(field))
        if not raw:
            continue
        try:
            number = int(_decimal(raw))
        except InvalidOperation:
            errors[field] = f'{label} must be a whole number.'
            continue
        if field == 'min_purchase' and number < 0:
            errors[field] = f'{label} cannot be negative.'
        elif field != 'min_purchase' and number <= 0:
            errors[field] = f'{label} must be greater than zero.'

    raw_until = _text(form_data.get('valid_until'))
    if raw_until:
        try:
            _parse_datetime(raw_until)
        except ValueError:
            errors['valid_until'] = 'Valid-until must be a date (YYYY-MM-DD).'

    return errors


def parse_voucher_form(form_data: dict, partial: bool = False) -> dict:
    """Convert validated values to model types. Codes are upper-cased."""
    data = {}

    def present(field):
        return not partial or field in form_data

    if present('code'):
        data['code'] = _text(form_data.get('code')).upper()
    if present('name'):
        data['name'] = _text(form_data.get('name'))
    if present('description'):
        data['description'] = _text(form_data.get('description')) or None
    if present('discount_type'):
        data['discount_type'] = _text(form_data.get('discount_type') or 'percentage')
    if present('discount_value'):
        data['discount_value'] = Decimal(_text(form_data.get('discount_value')))
    if present('min_purchase'):
        raw = _text(form_data.get('min_purchase'))
        data['min_purchase'] = int(Decimal(raw)) if raw else 0
    for field in ('max_discount', 'usage_limit'):
        if present(field):
            raw = _text(form_data.get(field))
            data[field] = int(Decimal(raw)) if raw else None
    if present('valid_until'):
        raw = _text(form_data.get('valid_until'))
        data['valid_until'] = _parse_datetime(raw) if raw else None
    if present('is_active'):
        data['is_active'] = form_data.get('is_active', True) in TRUTHY
    return data
