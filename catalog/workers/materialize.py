"""RQ worker job: materialize variants for a product in the background."""
import logging
from flask import current_app, has_app_context
from catalog import create_app
from catalog.services import variant_service, variant_store

logger = logging.getLogger(__name__)

_worker_app = None


def _get_app():
    """Return an app instance for worker execution.

    Reuse the current app when already inside an app context (tests/CLI),
    otherwise lazily create the worker app once.
    """
    global _worker_app
    if has_app_context():
        return current_app._get_current_object()
    if _worker_app is None:
        _worker_app = create_app()
    return _worker_app


def materialize_variants(product_id, operator_id=None):
    """Create the missing variants of a product.

    Safe to retry: combinations that already have a variant are skipped,
    and the per-product batch lock keeps two runs from overlapping.
    """
    app = _get_app()
    with app.app_context():
        if not variant_store.get_product(product_id):
            logger.error("Product %s not found", product_id)
            return None

        try:
            result = variant_service.generate_variants(product_id, operator_id)
        except variant_service.BatchInProgressError:
            logger.info("Batch already running for product %s, skipping", product_id)
            return None
        except Exception:
            logger.exception("Variant generation failed for product %s", product_id)
            raise  # let RQ handle retry

        logger.info("Variant generation for product %s: %s", product_id, result.notice)
        return result.as_dict()
