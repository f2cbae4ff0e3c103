"""
app/vouchers/models.py
----------------------
Voucher model.

discount_type decides how discount_value is read:
  percentage → discount_value is a percent in (0, 100], optionally
               capped by max_discount
  fixed      → discount_value is whole Rupiah off the subtotal
"""
from datetime import datetime
from app import db


DISCOUNT_TYPES = [
    ('percentage', '% Off Order'),
    ('fixed',      'Fixed Rp Off Order'),
]
DISCOUNT_TYPE_CHOICES = [d[0] for d in DISCOUNT_TYPES]


class Voucher(db.Model):
    """A discount code with eligibility rules and a usage counter."""
    __tablename__ = 'vouchers'

    id             = db.Column(db.Integer, primary_key=True)
    code           = db.Column(db.String(50),  unique=True, nullable=False, index=True)   # stored upper-case
    name           = db.Column(db.String(200), nullable=False)
    description    = db.Column(db.Text,        nullable=True)
    discount_type  = db.Column(db.String(20),  nullable=False, default='percentage')
    discount_value = db.Column(db.Numeric(12, 2), nullable=False)
    min_purchase   = db.Column(db.Integer,     nullable=False, default=0)
    max_discount   = db.Column(db.Integer,     nullable=True)    # None = uncapped
    usage_limit    = db.Column(db.Integer,     nullable=True)    # None = unlimited
    used_count     = db.Column(db.Integer,     nullable=False, default=0)
    is_active      = db.Column(db.Boolean,     nullable=False, default=True, index=True)
    valid_from     = db.Column(db.DateTime,    nullable=False, default=datetime.utcnow)
    valid_until    = db.Column(db.DateTime,    nullable=True)    # None = never expires
    created_at     = db.Column(db.DateTime,    nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('discount_value > 0', name='check_discount_value_positive'),
        db.CheckConstraint('min_purchase >= 0', name='check_min_purchase_non_negative'),
        db.CheckConstraint('used_count >= 0', name='check_used_count_non_negative'),
        db.CheckConstraint('usage_limit IS NULL OR used_count <= usage_limit',
                           name='check_used_count_within_limit'),
    )

    # ── Helpers ───────────────────────────────────────────────────

    @property
    def is_used_up(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def is_expired(self, now: datetime = None) -> bool:
        return self.valid_until is not None and self.valid_until < (now or datetime.utcnow())

    @property
    def status_label(self) -> str:
        """Admin table badge: Inactive / Expired / Used Up / Active."""
        if not self.is_active:
            return 'Inactive'
        if self.is_expired():
            return 'Expired'
        if self.is_used_up:
            return 'Used Up'
        return 'Active'

    @property
    def type_label(self) -> str:
        return dict(DISCOUNT_TYPES).get(self.discount_type, self.discount_type)

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'code':           self.code,
            'name':           self.name,
            'description':    self.description or '',
            'discount_type':  self.discount_type,
            'discount_value': float(self.discount_value) if self.discount_value is not None else None,
            'min_purchase':   self.min_purchase,
            'max_discount':   self.max_discount,
            'usage_limit':    self.usage_limit,
            'used_count':     self.used_count,
            'is_active':      self.is_active,
            'valid_from':     self.valid_from.isoformat() if self.valid_from else None,
            'valid_until':    self.valid_until.isoformat() if self.valid_until else None,
            'status':         self.status_label,
        }

    def __repr__(self):
        return f'<Voucher {self.code!r} {self.discount_type} {self.discount_value}>'
