"""
app/main/routes.py
──────────────────
Store front page data, public stats and the health check.
"""
from datetime import datetime

from flask import jsonify, current_app
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.main import main
from app.inventory.models import Product, Category
from app.inventory.snapshot import availability_clause
from app.testimonials.models import Testimonial


@main.route('/')
def index():
    return jsonify({
        'store':    current_app.config['STORE_NAME'],
        'currency': current_app.config['CURRENCY_LABEL'],
    })


@main.route('/stats')
def stats():
    """Available products, approved testimonials (count + avg rating), categories."""
    products_count   = db.session.query(func.count(Product.id)).filter(availability_clause()).scalar()
    categories_count = db.session.query(func.count(Category.id)).scalar()
    t_count, t_avg   = (
        db.session.query(func.count(Testimonial.id), func.avg(Testimonial.rating))
        .filter(Testimonial.approved.is_(True))
        .one()
    )

    return jsonify({
        'total_products':     products_count or 0,
        'total_testimonials': t_count or 0,
        'total_categories':   categories_count or 0,
        'avg_rating':         round(float(t_avg), 1) if t_avg is not None else 0,
    })


@main.route('/health')
def health():
    """Health check for load balancers and monitoring."""
    status = 'ok'
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db.session.rollback()
        status = 'error'
        current_app.logger.error(f"Health check failed (DB): {e}")

    response = {
        'status':    status,
        'timestamp': datetime.utcnow().isoformat(),
        'details':   {'db': status},
    }
    return jsonify(response), 200 if status == 'ok' else 500
