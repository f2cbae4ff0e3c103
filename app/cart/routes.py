"""
app/cart/routes.py
------------------
JSON endpoints over the session cart.

The cart store has no database access; these routes read fresh
inventory snapshots and hand them to it. Stock problems on a quantity
change clamp the line and come back as `notices`, they never reject
the whole cart.
"""
from flask import request, jsonify, abort, current_app

from app.cart import cart
from app.cart.session import get_cart_store, get_voucher_application
from app.errors import BackendUnavailable, ItemUnavailable, StockInsufficient
from app.inventory.models import Product
from app.inventory.snapshot import product_query, read_inventory, read_one, is_available
from app.vouchers.engine import payable_total


def cart_payload(store, notices=()) -> dict:
    """Cart lines + totals + the applied voucher, as one JSON document."""
    data     = store.to_dict()
    applied  = get_voucher_application().current()
    discount = applied.discount if applied else 0

    data['voucher']  = applied.snapshot.to_dict() if applied else None
    data['discount'] = discount
    data['total']    = payable_total(data['subtotal'], discount)
    data['notices']  = [n.to_dict() for n in notices]
    return data


def _quantity_arg(data, default=None) -> int:
    raw = data.get('quantity', default)
    try:
        return int(raw)
    except (TypeError, ValueError):
        abort(400, description='Quantity must be a whole number.')


# ── View (reconciled) ─────────────────────────────────────────────

@cart.route('/')
def index():
    store   = get_cart_store()
    notices = []
    if not store.is_empty():
        try:
            report  = store.reconcile(read_inventory(store.product_ids()))
            notices = report.notices
        except BackendUnavailable as exc:
            # Show the cart as it is; checkout re-validates anyway
            notices = [exc]
    return jsonify(cart_payload(store, notices))


# ── Add ───────────────────────────────────────────────────────────

@cart.route('/items', methods=['POST'])
def add_item():
    data       = request.get_json(silent=True) or request.form
    product_id = data.get('product_id')
    quantity   = _quantity_arg(data, 1)
    if quantity <= 0:
        abort(400, description='Quantity must be at least 1.')

    try:
        product = product_query().filter(Product.id == int(product_id)).first()
    except (TypeError, ValueError):
        abort(400, description='A valid product_id is required.')
    if product is None:
        abort(404, description='Product not found.')

    record = read_one(product.id)
    if record is None or not record.is_available or not is_available(product):
        raise ItemUnavailable(str(product.id))

    store    = get_cart_store()
    line     = store.get(product.id)
    in_cart  = line.quantity if line else 0
    room     = record.stock_count - in_cart
    notices  = []

    if room <= 0:
        if record.stock_count <= 0:
            raise StockInsufficient(str(product.id), 0, f'"{product.name}" is out of stock.')
        raise StockInsufficient(str(product.id), record.stock_count)
    if quantity > room:
        notices.append(StockInsufficient(str(product.id), record.stock_count))
        quantity = room

    store.add_item(product.id, product.name, product.price, product.image_url or '', quantity)
    current_app.logger.info(f"Cart add: product {product.id} x{quantity}")
    return jsonify(cart_payload(store, notices))


# ── Update quantity ───────────────────────────────────────────────

@cart.route('/items/<product_id>', methods=['PATCH', 'PUT'])
def update_item(product_id):
    data  = request.get_json(silent=True) or request.form
    store = get_cart_store()
    if store.get(product_id) is None:
        abort(404, description='Item is not in your cart.')

    report = store.change_quantity(product_id, _quantity_arg(data), read_one(product_id))
    return jsonify(cart_payload(store, report.notices))


# ── Remove / clear ────────────────────────────────────────────────

@cart.route('/items/<product_id>', methods=['DELETE'])
def remove_item(product_id):
    store = get_cart_store()
    store.remove_item(product_id)
    return jsonify(cart_payload(store))


@cart.route('/', methods=['DELETE'])
def clear():
    store = get_cart_store()
    store.clear()
    return jsonify(cart_payload(store))
