from catalog.extensions import db
from catalog.models.audit_log import AuditLog


def record(action, product_id, operator_id=None, payload=None):
    """Append an audit row for an operator mutation and commit it."""
    db.session.add(
        AuditLog(
            operator_id=operator_id,
            action=action,
            product_id=product_id,
            payload=payload,
        )
    )
    db.session.commit()
