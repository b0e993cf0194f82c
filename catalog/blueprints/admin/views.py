"""Operator JSON API for options and the variant matrix.

Every mutation answers with a ``notice`` for the operator and the refreshed
matrix, so the editor re-renders from state observed after the write.
"""
import logging
from flask import request
from catalog import extensions
from catalog.blueprints.admin import admin_bp
from catalog.services import option_service, variant_service, variant_store
from catalog.services.projections import (
    GridAmbiguityError,
    grid_projection,
    list_projection,
    options_payload,
    variant_payload,
)
from catalog.services.variant_service import (
    BatchInProgressError,
    CombinationLimitError,
    VariantWriteError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _operator_id():
    return request.headers.get("X-Operator-Id") or None


def _error(message, status, **extra):
    return dict({"error": message}, **extra), status


def _body():
    return request.get_json(silent=True) or {}


def _parse_fixed(raw):
    """``"3:7,4:9"`` → ``{3: 7, 4: 9}``."""
    fixed = {}
    if not raw:
        return fixed
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        option_id, sep, value_id = part.partition(":")
        if not sep:
            raise ValueError(f"Invalid fixed value '{part}', expected option:value.")
        try:
            fixed[int(option_id)] = int(value_id)
        except ValueError:
            raise ValueError(f"Invalid fixed value '{part}', ids must be numbers.")
    return fixed


def _parse_ids(body):
    ids = body.get("ids")
    if not isinstance(ids, list):
        raise ValueError("Body must contain an 'ids' list.")
    try:
        return [int(i) for i in ids]
    except (TypeError, ValueError):
        raise ValueError("Ids must be numbers.")


def _matrix_response(matrix, notice=None, status=200, **extra):
    payload = {
        "product_id": matrix.product_id,
        "options": options_payload(matrix.options),
        "matrix": list_projection(matrix),
    }
    if notice:
        payload["notice"] = notice
    payload.update(extra)
    return payload, status


@admin_bp.errorhandler(VariantWriteError)
def _write_failed(e):
    return _error(f"Could not save {e.label}: {e.message}", 502, combination=e.label)


@admin_bp.errorhandler(CombinationLimitError)
def _limit_exceeded(e):
    return _error(str(e), 422, count=e.count, limit=e.limit)


@admin_bp.errorhandler(BatchInProgressError)
def _batch_running(e):
    return _error(str(e), 409)


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------

@admin_bp.route("/products/<int:product_id>/variants")
def variant_matrix(product_id):
    """List (default) or grid view of every combination."""
    if not variant_store.get_product(product_id):
        return _error("Product not found.", 404)

    matrix = variant_service.build_matrix(product_id)
    view = request.args.get("view", "list")
    if view == "grid":
        try:
            fixed = _parse_fixed(request.args.get("fixed"))
            grid = grid_projection(matrix, fixed)
        except (GridAmbiguityError, ValueError) as e:
            return _error(str(e), 400)
        return {
            "product_id": product_id,
            "options": options_payload(matrix.options),
            "matrix": grid,
        }
    if view != "list":
        return _error("view must be 'list' or 'grid'.", 400)
    return _matrix_response(matrix)


# ---------------------------------------------------------------------------
# Options and values
# ---------------------------------------------------------------------------

@admin_bp.route("/products/<int:product_id>/options", methods=["POST"])
def create_option(product_id):
    try:
        option = option_service.add_option(product_id, _body().get("name"), _operator_id())
    except ValueError as e:
        return _error(str(e), 400)
    if not option:
        return _error("Product not found.", 404)
    return _matrix_response(
        variant_service.build_matrix(product_id),
        notice=f"Option '{option.name}' added.",
        status=201,
    )


@admin_bp.route("/options/<int:option_id>", methods=["DELETE"])
def delete_option(option_id):
    product_id = option_service.remove_option(option_id, _operator_id())
    if product_id is None:
        return _error("Option not found.", 404)
    return _matrix_response(
        variant_service.build_matrix(product_id), notice="Option removed."
    )


@admin_bp.route("/options/<int:option_id>/values", methods=["POST"])
def create_option_value(option_id):
    try:
        value = option_service.add_option_value(
            option_id, _body().get("value"), _operator_id()
        )
    except ValueError as e:
        return _error(str(e), 400)
    if not value:
        return _error("Option not found.", 404)
    product_id = variant_store.get_option_product_id(option_id)
    return _matrix_response(
        variant_service.build_matrix(product_id),
        notice=f"Value '{value.label}' added.",
        status=201,
    )


@admin_bp.route("/values/<int:value_id>", methods=["DELETE"])
def delete_option_value(value_id):
    product_id = option_service.remove_option_value(value_id, _operator_id())
    if product_id is None:
        return _error("Value not found.", 404)
    return _matrix_response(
        variant_service.build_matrix(product_id), notice="Value removed."
    )


@admin_bp.route("/products/<int:product_id>/options/order", methods=["PUT"])
def reorder_options(product_id):
    if not variant_store.get_product(product_id):
        return _error("Product not found.", 404)
    try:
        option_service.reorder_options(product_id, _parse_ids(_body()), _operator_id())
    except ValueError as e:
        return _error(str(e), 400)
    return _matrix_response(
        variant_service.build_matrix(product_id), notice="Options reordered."
    )


@admin_bp.route("/options/<int:option_id>/values/order", methods=["PUT"])
def reorder_option_values(option_id):
    try:
        product_id = option_service.reorder_option_values(
            option_id, _parse_ids(_body()), _operator_id()
        )
    except ValueError as e:
        return _error(str(e), 400)
    if product_id is None:
        return _error("Option not found.", 404)
    return _matrix_response(
        variant_service.build_matrix(product_id), notice="Values reordered."
    )


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

@admin_bp.route("/products/<int:product_id>/variants/generate", methods=["POST"])
def generate_variants(product_id):
    """Create variants for every combination that has none.

    ``?background=1`` hands the batch to the RQ worker.
    """
    if not variant_store.get_product(product_id):
        return _error("Product not found.", 404)

    if request.args.get("background") == "1":
        from catalog.workers.materialize import materialize_variants

        job = extensions.task_queue.enqueue(
            materialize_variants, product_id, _operator_id(), job_timeout=600
        )
        if job is not None:
            return {"product_id": product_id, "job_id": job.id, "notice": "Generation queued."}, 202
        logger.info("Queue unavailable, generating variants inline for %s", product_id)

    result = variant_service.generate_variants(product_id, _operator_id())
    return _matrix_response(
        result.matrix,
        notice=f"Variants generated: {result.notice}.",
        batch=result.as_dict(),
    )


@admin_bp.route(
    "/products/<int:product_id>/variants/<int:variant_id>/toggle", methods=["POST"]
)
def toggle_variant(product_id, variant_id):
    if not variant_store.get_product(product_id):
        return _error("Product not found.", 404)
    update = variant_service.toggle_availability(product_id, variant_id, _operator_id())
    if update is None:
        return _error("Variant is not linked to a current combination.", 409)
    state = "available" if update.variant.is_available else "unavailable"
    return _matrix_response(
        update.matrix,
        notice=f"{update.label} is now {state}.",
        variant=variant_payload(update.variant),
    )


@admin_bp.route(
    "/products/<int:product_id>/variants/<int:variant_id>", methods=["PATCH"]
)
def edit_variant(product_id, variant_id):
    if not variant_store.get_product(product_id):
        return _error("Product not found.", 404)
    body = _body()
    changes = {k: body[k] for k in ("sku", "price", "image_url") if k in body}
    if not changes:
        return _error("Nothing to update; send sku, price or image_url.", 400)
    try:
        update = variant_service.update_details(
            product_id, variant_id, changes, _operator_id()
        )
    except ValueError as e:
        return _error(str(e), 400)
    if update is None:
        return _error("Variant is not linked to a current combination.", 409)
    return _matrix_response(
        update.matrix,
        notice=f"{update.label} updated.",
        variant=variant_payload(update.variant),
    )


@admin_bp.route("/products/<int:product_id>/variants/availability", methods=["POST"])
def set_all_availability(product_id):
    if not variant_store.get_product(product_id):
        return _error("Product not found.", 404)
    is_available = _body().get("is_available")
    if not isinstance(is_available, bool):
        return _error("Body must contain a boolean 'is_available'.", 400)

    result = variant_service.set_all_availability(product_id, is_available, _operator_id())
    state = "available" if is_available else "unavailable"
    return _matrix_response(
        result.matrix,
        notice=f"Marked {state}: {result.notice}.",
        batch=result.as_dict(),
    )


@admin_bp.route("/products/<int:product_id>/variants/orphans", methods=["DELETE"])
def purge_orphans(product_id):
    if not variant_store.get_product(product_id):
        return _error("Product not found.", 404)
    result = variant_service.purge_orphans(product_id, _operator_id())
    return _matrix_response(
        result.matrix,
        notice=f"Orphaned variants removed: {result.notice}.",
        batch=result.as_dict(),
    )


@admin_bp.route("/products/<int:product_id>/batch", methods=["DELETE"])
def cancel_batch(product_id):
    """Called when the operator leaves the editor; running batches stop issuing writes."""
    if not variant_service.cancel_batch(product_id):
        return {"cancelled": False, "notice": "Cancellation unavailable without Redis."}, 200
    return {"cancelled": True, "notice": "Running batch will stop after in-flight writes."}, 202
