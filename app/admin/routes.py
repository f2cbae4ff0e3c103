"""
app/admin/routes.py
──────────────────
Admin panel API: products, categories, vouchers and testimonial
moderation. Every route sits behind the shared admin token.
"""
from datetime import datetime

from flask import request, jsonify, current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from app import db
from app.admin import admin
from app.auth.decorators import admin_required
from app.errors import BackendUnavailable
from app.inventory.models import Product, Category
from app.inventory.snapshot import product_query
from app.inventory.validators import (
    validate_product_form, parse_product_form, validate_category_form,
)
from app.schema import get_capabilities
from app.testimonials.models import Testimonial
from app.vouchers.models import Voucher
from app.vouchers.validators import (
    validate_voucher_form, parse_voucher_form, generate_voucher_code,
)


# ── Helpers ───────────────────────────────────────────────────────

def _payload():
    return request.get_json(silent=True) or request.form.to_dict()


def _invalid(errors, message='Please correct the highlighted fields.'):
    return jsonify({'error': message, 'code': 'invalid_input', 'fields': errors}), 400


def _commit_or_conflict(message):
    """Commit; on a unique/check violation roll back and report 409."""
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning(f"Admin write rejected: {e.orig}")
        return jsonify({'error': message, 'code': 'conflict'}), 409
    return None


def _require_availability_column():
    if not get_capabilities().products_is_available:
        raise BackendUnavailable("Product writes need the is_available column. Run 'flask patch-db'.")


# ── Dashboard ─────────────────────────────────────────────────────

@admin.route('/')
@admin_required
def dashboard():
    now = datetime.utcnow()
    active_vouchers = Voucher.query.filter(
        Voucher.is_active.is_(True),
        or_(Voucher.valid_until.is_(None), Voucher.valid_until >= now),
    ).count()
    return jsonify({
        'products':               db.session.query(func.count(Product.id)).scalar(),
        'categories':             db.session.query(func.count(Category.id)).scalar(),
        'vouchers':               db.session.query(func.count(Voucher.id)).scalar(),
        'active_vouchers':        active_vouchers,
        'pending_testimonials':   Testimonial.query.filter_by(approved=False).count(),
        'out_of_stock':           Product.query.filter(Product.stock <= 0).count(),
    })


# ── Products ──────────────────────────────────────────────────────

@admin.route('/products')
@admin_required
def list_products():
    rows = product_query().order_by(Product.created_at.desc(), Product.id.desc()).all()
    return jsonify([p.to_dict() for p in rows])


@admin.route('/products', methods=['POST'])
@admin_required
def create_product():
    _require_availability_column()
    data   = _payload()
    errors = validate_product_form(data)
    if errors:
        return _invalid(errors)

    product = Product(**parse_product_form(data))
    db.session.add(product)
    conflict = _commit_or_conflict('Product could not be saved.')
    if conflict:
        return conflict
    current_app.logger.info(f"Product created: {product.name} (#{product.id})")
    return jsonify(product.to_dict()), 201


@admin.route('/products/<int:product_id>', methods=['PATCH', 'PUT'])
@admin_required
def update_product(product_id):
    _require_availability_column()
    product = db.get_or_404(Product, product_id)
    data    = _payload()
    errors  = validate_product_form(data, partial=True)
    if errors:
        return _invalid(errors)

    for key, value in parse_product_form(data, partial=True).items():
        setattr(product, key, value)
    conflict = _commit_or_conflict('Product could not be saved.')
    if conflict:
        return conflict
    current_app.logger.info(f"Product updated: {product.name} (#{product.id})")
    return jsonify(product.to_dict())


@admin.route('/products/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    product = product_query().filter(Product.id == product_id).first_or_404()
    db.session.delete(product)
    db.session.commit()
    current_app.logger.info(f"Product deleted: #{product_id}")
    return jsonify({'deleted': str(product_id)})


# ── Categories ────────────────────────────────────────────────────

@admin.route('/categories')
@admin_required
def list_categories():
    return jsonify([c.to_dict() for c in Category.query.order_by(Category.name).all()])


@admin.route('/categories', methods=['POST'])
@admin_required
def create_category():
    data   = _payload()
    errors = validate_category_form(data)
    if errors:
        return _invalid(errors)

    category = Category(name=str(data['name']).strip())
    db.session.add(category)
    conflict = _commit_or_conflict(f'Category "{category.name}" already exists.')
    if conflict:
        return conflict
    return jsonify(category.to_dict()), 201


@admin.route('/categories/<int:category_id>', methods=['PATCH', 'PUT'])
@admin_required
def update_category(category_id):
    category = db.get_or_404(Category, category_id)
    data     = _payload()
    errors   = validate_category_form(data)
    if errors:
        return _invalid(errors)

    category.name = str(data['name']).strip()
    conflict = _commit_or_conflict(f'Category "{category.name}" already exists.')
    if conflict:
        return conflict
    return jsonify(category.to_dict())


@admin.route('/categories/<int:category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    category = db.get_or_404(Category, category_id)
    # products keep existing, uncategorised
    Product.query.filter_by(category_id=category_id).update(
        {Product.category_id: None}, synchronize_session=False
    )
    db.session.delete(category)
    db.session.commit()
    return jsonify({'deleted': category_id})


# ── Vouchers ──────────────────────────────────────────────────────

@admin.route('/vouchers')
@admin_required
def list_vouchers():
    rows = Voucher.query.order_by(Voucher.created_at.desc(), Voucher.id.desc()).all()
    return jsonify([v.to_dict() for v in rows])


@admin.route('/vouchers/generate-code')
@admin_required
def generate_code():
    """Suggest an unused random code."""
    code = generate_voucher_code()
    while Voucher.query.filter_by(code=code).first() is not None:
        code = generate_voucher_code()
    return jsonify({'code': code})


@admin.route('/vouchers', methods=['POST'])
@admin_required
def create_voucher():
    data   = _payload()
    errors = validate_voucher_form(data)
    if errors:
        return _invalid(errors)

    voucher = Voucher(**parse_voucher_form(data))
    db.session.add(voucher)
    conflict = _commit_or_conflict(f'Voucher code "{voucher.code}" already exists.')
    if conflict:
        return conflict
    current_app.logger.info(f"Voucher created: {voucher.code}")
    return jsonify(voucher.to_dict()), 201


@admin.route('/vouchers/<int:voucher_id>', methods=['PATCH', 'PUT'])
@admin_required
def update_voucher(voucher_id):
    voucher = db.get_or_404(Voucher, voucher_id)
    data    = _payload()
    if 'discount_type' in data or 'discount_value' in data:
        # type and value are checked together
        data = dict({'discount_type':  voucher.discount_type,
                     'discount_value': str(voucher.discount_value)}, **data)
    errors  = validate_voucher_form(data, partial=True)
    if errors:
        return _invalid(errors)

    for key, value in parse_voucher_form(data, partial=True).items():
        setattr(voucher, key, value)
    conflict = _commit_or_conflict('Voucher could not be saved.')
    if conflict:
        return conflict
    current_app.logger.info(f"Voucher updated: {voucher.code}")
    return jsonify(voucher.to_dict())


@admin.route('/vouchers/<int:voucher_id>/toggle', methods=['POST'])
@admin_required
def toggle_voucher(voucher_id):
    voucher = db.get_or_404(Voucher, voucher_id)
    voucher.is_active = not voucher.is_active
    db.session.commit()
    current_app.logger.info(f"Voucher {voucher.code} {'activated' if voucher.is_active else 'deactivated'}")
    return jsonify(voucher.to_dict())


@admin.route('/vouchers/<int:voucher_id>', methods=['DELETE'])
@admin_required
def delete_voucher(voucher_id):
    voucher = db.get_or_404(Voucher, voucher_id)
    db.session.delete(voucher)
    db.session.commit()
    current_app.logger.info(f"Voucher deleted: {voucher.code}")
    return jsonify({'deleted': voucher_id})


# ── Testimonials ──────────────────────────────────────────────────

@admin.route('/testimonials')
@admin_required
def list_testimonials():
    rows = Testimonial.query.order_by(Testimonial.approved, Testimonial.created_at.desc()).all()
    return jsonify([t.to_dict() for t in rows])


@admin.route('/testimonials/<int:testimonial_id>/approve', methods=['POST'])
@admin_required
def approve_testimonial(testimonial_id):
    testimonial = db.get_or_404(Testimonial, testimonial_id)
    testimonial.approved = True
    db.session.commit()
    return jsonify(testimonial.to_dict())


@admin.route('/testimonials/<int:testimonial_id>', methods=['DELETE'])
@admin_required
def delete_testimonial(testimonial_id):
    testimonial = db.get_or_404(Testimonial, testimonial_id)
    db.session.delete(testimonial)
    db.session.commit()
    return jsonify({'deleted': testimonial_id})
