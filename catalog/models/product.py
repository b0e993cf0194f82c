from datetime import datetime, timezone
from catalog.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    price_cents = db.Column(db.Integer)  # base price, None = on request
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    options = db.relationship(
        "ProductOption",
        backref="product",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="ProductOption.sort",
    )
    variants = db.relationship(
        "ProductVariant",
        backref="product",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )

    @property
    def price_display(self):
        """Base price in major units for display."""
        if self.price_cents is None:
            return None
        return self.price_cents / 100

    def __repr__(self):
        return f"<Product {self.id}: {self.title}>"
