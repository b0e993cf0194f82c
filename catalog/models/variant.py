from datetime import datetime, timezone
from catalog.extensions import db


class ProductVariant(db.Model):
    __tablename__ = "product_variants"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku = db.Column(db.String(100))
    price_cents = db.Column(db.Integer)  # override, None = product base price
    is_available = db.Column(db.Boolean, nullable=False, default=False)
    image_url = db.Column(db.String(1024))
    combination_key = db.Column(db.String(512), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    pairs = db.relationship(
        "ProductVariantOption",
        backref="variant",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="ProductVariantOption.option_id",
    )

    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "combination_key", name="uq_variant_combination"
        ),
    )

    def __repr__(self):
        return f"<Variant {self.id} [{self.combination_key}]>"


class ProductVariantOption(db.Model):
    """One (option, value) pair of a variant.

    Option and value ids are plain columns, not foreign keys: removing an
    option or value must leave the pair behind so the variant is seen as
    orphaned instead of shrinking onto a smaller combination.
    """

    __tablename__ = "product_variant_options"

    variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id", ondelete="CASCADE"),
        primary_key=True,
    )
    option_id = db.Column(db.Integer, primary_key=True)
    value_id = db.Column(db.Integer, nullable=False, index=True)

    def __repr__(self):
        return f"<VariantOption {self.option_id}={self.value_id}>"
