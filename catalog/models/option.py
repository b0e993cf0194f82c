from datetime import datetime, timezone
from catalog.extensions import db


class ProductOption(db.Model):
    __tablename__ = "product_options"
    # variant pairs reference ids without FKs; deleted ids must never come back
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(100), nullable=False)  # "Size", "Color"
    sort = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    values = db.relationship(
        "ProductOptionValue",
        backref="option",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="ProductOptionValue.sort",
    )

    def __repr__(self):
        return f"<Option {self.name} #{self.sort}>"


class ProductOptionValue(db.Model):
    __tablename__ = "product_option_values"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    option_id = db.Column(
        db.Integer,
        db.ForeignKey("product_options.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value = db.Column(db.String(100), nullable=False)  # "Large"
    sort = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<OptionValue {self.value} #{self.sort}>"
