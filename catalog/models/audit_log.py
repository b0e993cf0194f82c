from datetime import datetime, timezone
from catalog.extensions import db


class AuditLog(db.Model):
    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.String(100), index=True)
    action = db.Column(db.String(50), nullable=False)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    payload = db.Column(db.JSON)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    ACTIONS = {
        "CREATE_OPTION",
        "DELETE_OPTION",
        "CREATE_OPTION_VALUE",
        "DELETE_OPTION_VALUE",
        "REORDER_OPTIONS",
        "REORDER_OPTION_VALUES",
        "GENERATE_VARIANTS",
        "TOGGLE_AVAILABILITY",
        "EDIT_VARIANT",
        "SET_ALL_AVAILABILITY",
        "PURGE_ORPHANS",
    }

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.operator_id}>"
