"""Storefront variant data: what a shopper can pick and what it costs."""
from flask import request
from catalog.blueprints.public import public_bp
from catalog.services import combinations, variant_service, variant_store
from catalog.services.projections import options_payload, variant_payload


def _storefront_variants(matrix):
    """Matched, available variants with the option values they stand for."""
    return [
        dict(
            variant_payload(item.variant),
            label=item.label,
            selection={str(o): v for o, v in item.combination.pairs},
        )
        for item in matrix.reconciled
        if item.is_available
    ]


@public_bp.route("/p/<int:product_id>/variants")
def product_variants(product_id):
    """Options, available variants and price range for a product page."""
    product = variant_store.get_product(product_id)
    if not product:
        return {"error": "Product not found."}, 404

    matrix = variant_service.build_matrix(product_id)
    available = [item.variant for item in matrix.reconciled if item.is_available]
    prices = combinations.price_range(available, product.price_cents)

    return {
        "product_id": product.id,
        "title": product.title,
        "options": options_payload(
            [option for option in matrix.options if option.values]
        ),
        "variants": _storefront_variants(matrix),
        "price_range": {
            "min": None if prices.min is None else prices.min / 100,
            "max": None if prices.max is None else prices.max / 100,
            "has_range": prices.has_range,
        },
    }


@public_bp.route("/p/<int:product_id>/variants/match")
def match_variant(product_id):
    """Variant for a full selection given as ``?<option_id>=<value_id>&...``."""
    if not variant_store.get_product(product_id):
        return {"error": "Product not found."}, 404

    try:
        selection = {int(k): int(v) for k, v in request.args.items()}
    except ValueError:
        return {"error": "Selection ids must be numbers."}, 400

    matrix = variant_service.build_matrix(product_id)
    variant = combinations.find_variant(matrix.reconciled, selection)
    if variant is None or not variant.is_available:
        return {"error": "This combination is not available."}, 404
    return {"variant": variant_payload(variant)}
