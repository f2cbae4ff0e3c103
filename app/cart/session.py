"""
app/cart/session.py
-------------------
Binds the CartStore and VoucherApplication to the Flask session.

One CartStore per request, cached on `g` and closed at app-context
teardown. Routes ask for it through get_cart_store() and pass it on.
"""
from flask import current_app, g, session

from app.cart.store import CartStore
from app.vouchers.state import VoucherApplication


def get_voucher_application() -> VoucherApplication:
    return VoucherApplication(session)


def _sync_applied_voucher(event: str, store: CartStore) -> None:
    """Keep the applied voucher's discount in step with the cart."""
    vouchers = get_voucher_application()
    if store.is_empty():
        vouchers.remove()
    else:
        vouchers.refresh(store.subtotal())


def _log_change(event: str, store: CartStore) -> None:
    current_app.logger.debug(f"Cart {event}: {store.item_count()} item(s), subtotal {store.subtotal()}")


def get_cart_store() -> CartStore:
    store = g.get('cart_store')
    if store is None:
        session.permanent = True
        store = CartStore(session)
        store.subscribe(_sync_applied_voucher)
        store.subscribe(_log_change)
        g.cart_store = store
    return store


def close_cart_store(exc=None) -> None:
    store = g.pop('cart_store', None)
    if store is not None:
        store.close()
