from datetime import datetime
from app import db


class Category(db.Model):
    """A product category shown as a catalog filter."""
    __tablename__ = 'categories'

    id         = db.Column(db.Integer, primary_key=True)
    name       = db.Column(db.String(120), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    products = db.relationship('Product', backref='category', lazy='select')

    def to_dict(self) -> dict:
        return {'id': self.id, 'name': self.name}

    def __repr__(self):
        return f"<Category {self.name!r}>"


class Product(db.Model):
    """A sellable catalog item. Prices are whole Rupiah."""
    __tablename__ = 'products'

    id           = db.Column(db.Integer, primary_key=True)
    name         = db.Column(db.String(200), nullable=False, index=True)
    description  = db.Column(db.Text, nullable=True)
    price        = db.Column(db.Integer, nullable=False)
    image_url    = db.Column(db.String(500), nullable=True)
    category_id  = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    stock        = db.Column(db.Integer, nullable=False, default=0)
    # Older databases lack this column; see app/schema.py
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    created_at   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at   = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='check_stock_non_negative'),
        db.CheckConstraint('price >= 0', name='check_price_non_negative'),
    )

    @property
    def category_name(self) -> str:
        return self.category.name if self.category else 'Unknown'

    def to_dict(self) -> dict:
        from app.inventory.snapshot import is_available
        return {
            'id':           str(self.id),
            'name':         self.name,
            'description':  self.description or '',
            'price':        self.price,
            'image_url':    self.image_url or '',
            'category_id':  self.category_id,
            'category':     self.category_name,
            'stock':        self.stock,
            'is_available': is_available(self),
            'created_at':   self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Product {self.id} {self.name!r} stock={self.stock}>"
