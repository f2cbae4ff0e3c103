from flask import jsonify, abort

from app.inventory.models import Product
from app.inventory.snapshot import availability_clause, product_query
from app.lists import lists
from app.lists.store import wishlist, compare_list, recently_viewed


def _available_product_or_404(product_id):
    product = product_query().filter(Product.id == product_id, availability_clause()).first()
    if product is None:
        abort(404, description='Product not found.')
    return product


# ── Wishlist ──────────────────────────────────────────────────────

@lists.route('/wishlist')
def get_wishlist():
    ids = [int(pid) for pid in wishlist().ids() if pid.isdigit()]
    if not ids:
        return jsonify([])
    products = product_query().filter(Product.id.in_(ids), availability_clause()).all()
    by_id    = {p.id: p for p in products}
    return jsonify([by_id[i].to_dict() for i in ids if i in by_id])


@lists.route('/wishlist/<int:product_id>', methods=['POST'])
def toggle_wishlist(product_id):
    product = _available_product_or_404(product_id)
    added   = wishlist().toggle(str(product.id))
    return jsonify({'product_id': str(product.id), 'wishlisted': added})


# ── Compare ───────────────────────────────────────────────────────

@lists.route('/compare')
def get_compare():
    return jsonify(compare_list().items())


@lists.route('/compare/<int:product_id>', methods=['POST'])
def toggle_compare(product_id):
    product = _available_product_or_404(product_id)
    compare = compare_list()

    if not compare.contains(product.id) and compare.is_full():
        abort(409, description=f'Maximum {compare.limit} products can be compared.')

    added = compare.toggle(product.to_dict())
    return jsonify({'product_id': str(product.id), 'comparing': added, 'items': compare.items()})


@lists.route('/compare', methods=['DELETE'])
def clear_compare():
    compare_list().clear()
    return jsonify([])


# ── Recently viewed ───────────────────────────────────────────────

@lists.route('/recently-viewed')
def get_recently_viewed():
    return jsonify(recently_viewed().items())
