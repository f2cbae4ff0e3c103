from datetime import datetime
from app import db


class Testimonial(db.Model):
    """
    A customer review. Public submissions start unapproved and only
    show on the storefront once an admin approves them.
    """
    __tablename__ = 'testimonials'

    id          = db.Column(db.Integer, primary_key=True)
    username    = db.Column(db.String(120), nullable=False)
    rating      = db.Column(db.Integer, nullable=False)
    item_bought = db.Column(db.String(200), nullable=False)
    message     = db.Column(db.Text, nullable=False)
    approved    = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='check_rating_range'),
    )

    def to_dict(self) -> dict:
        return {
            'id':          self.id,
            'username':    self.username,
            'rating':      self.rating,
            'item_bought': self.item_bought,
            'message':     self.message,
            'approved':    self.approved,
            'created_at':  self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Testimonial {self.username!r} {self.rating}★ approved={self.approved}>"
