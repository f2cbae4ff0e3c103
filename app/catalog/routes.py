"""
app/catalog/routes.py
---------------------
Product listing with category filter, substring search and sorting.
Unavailable products never reach the storefront.
"""
from flask import request, jsonify, abort
from sqlalchemy import or_

from app.catalog import catalog
from app.inventory.models import Product, Category
from app.inventory.snapshot import availability_clause, product_query, is_available
from app.lists.store import recently_viewed


SORTS = {
    'price_high': Product.price.desc(),
    'price_low':  Product.price.asc(),
    'name_asc':   Product.name.asc(),
    'name_desc':  Product.name.desc(),
    'stock_high': Product.stock.desc(),
    'newest':     Product.created_at.desc(),
}
DEFAULT_SORT = 'price_high'


def _like_pattern(q: str) -> str:
    """%q% with LIKE wildcards in the user's text escaped."""
    escaped = q.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


def search_products(q: str = '', category=None, sort: str = DEFAULT_SORT, limit: int = None):
    query = product_query().filter(availability_clause())

    if category not in (None, '', 'all'):
        try:
            query = query.filter(Product.category_id == int(category))
        except (TypeError, ValueError):
            abort(400, description='Category must be a valid id.')

    q = (q or '').strip()
    if q:
        pattern = _like_pattern(q)
        query = query.outerjoin(Category, Product.category_id == Category.id).filter(or_(
            Product.name.ilike(pattern, escape='\\'),
            Product.description.ilike(pattern, escape='\\'),
            Category.name.ilike(pattern, escape='\\'),
        ))

    query = query.order_by(SORTS.get(sort, SORTS[DEFAULT_SORT]), Product.id.asc())
    if limit:
        query = query.limit(limit)
    return query.all()


# ── List ──────────────────────────────────────────────────────────

@catalog.route('/')
def index():
    products = search_products(
        q=request.args.get('q', ''),
        category=request.args.get('category'),
        sort=request.args.get('sort', DEFAULT_SORT),
    )
    return jsonify([p.to_dict() for p in products])


# ── Search dropdown ───────────────────────────────────────────────

@catalog.route('/search')
def search():
    q = request.args.get('q', '').strip()
    if not q:
        return jsonify([])
    products = search_products(q=q, sort='name_asc', limit=8)
    return jsonify([p.to_dict() for p in products])


# ── Detail ────────────────────────────────────────────────────────

@catalog.route('/<int:product_id>')
def detail(product_id):
    product = product_query().filter(Product.id == product_id).first()
    if product is None or not is_available(product):
        abort(404, description='Product not found.')

    recently_viewed().push(product.to_dict())
    return jsonify(product.to_dict())


# ── Categories ────────────────────────────────────────────────────

@catalog.route('/categories')
def categories():
    rows = Category.query.order_by(Category.name.asc()).all()
    return jsonify([c.to_dict() for c in rows])
