from flask import request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.errors import BackendUnavailable
from app.testimonials import testimonials
from app.testimonials.models import Testimonial
from app.testimonials.validators import validate_testimonial_form


@testimonials.route('/')
def index():
    """Latest approved testimonials."""
    limit = current_app.config.get('TESTIMONIAL_LIMIT', 6)
    rows = (
        Testimonial.query
        .filter_by(approved=True)
        .order_by(Testimonial.created_at.desc(), Testimonial.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify([t.to_dict() for t in rows])


@testimonials.route('/', methods=['POST'])
def submit():
    """Public submission; waits for admin approval."""
    data   = request.get_json(silent=True) or request.form
    errors = validate_testimonial_form(data)
    if errors:
        return jsonify({'error': 'Please fill in all fields and select a rating.',
                        'code': 'invalid_testimonial', 'fields': errors}), 400

    t = Testimonial(
        username=data['username'].strip(),
        rating=int(data['rating']),
        item_bought=data['item_bought'].strip(),
        message=data['message'].strip(),
        approved=False,
    )
    try:
        db.session.add(t)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"Testimonial insert failed: {exc}")
        raise BackendUnavailable() from exc

    return jsonify({'id': t.id, 'message': 'Testimonial submitted! It will be reviewed by admin.'}), 201
