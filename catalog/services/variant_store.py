"""Relational storage for product options and variants.

Loads return engine snapshots (see ``combinations``), never ORM rows, so
the engine stays unaware of the session. Every write commits its own unit
of work; batch callers treat each call as an independent request and a
failed call leaves the session rolled back and usable.
"""
import logging
from sqlalchemy.exc import SQLAlchemyError
from catalog.extensions import db
from catalog.models.product import Product
from catalog.models.option import ProductOption, ProductOptionValue
from catalog.models.variant import ProductVariant, ProductVariantOption
from catalog.services.combinations import (
    Option,
    OptionValue,
    Variant,
    combination_key,
)

logger = logging.getLogger(__name__)


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _value_snapshot(value):
    return OptionValue(
        id=value.id, label=value.value, sort=value.sort, option_id=value.option_id
    )


def _option_snapshot(option):
    values = sorted(option.values, key=lambda v: (v.sort, v.id))
    return Option(
        id=option.id,
        name=option.name,
        sort=option.sort,
        values=tuple(_value_snapshot(v) for v in values),
    )


def _variant_snapshot(variant):
    return Variant(
        id=variant.id,
        pairs=tuple((p.option_id, p.value_id) for p in variant.pairs),
        is_available=bool(variant.is_available),
        sku=variant.sku,
        price_cents=variant.price_cents,
        image_url=variant.image_url,
    )


def get_product(product_id):
    return db.session.get(Product, product_id)


# ---------------------------------------------------------------------------
# Options and values
# ---------------------------------------------------------------------------

def load_options(product_id):
    """Options of a product with their values, both in sort order."""
    options = (
        ProductOption.query.filter_by(product_id=product_id)
        .order_by(ProductOption.sort, ProductOption.id)
        .all()
    )
    return [_option_snapshot(o) for o in options]


def create_option(product_id, name):
    if not get_product(product_id):
        return None
    position = ProductOption.query.filter_by(product_id=product_id).count()
    option = ProductOption(product_id=product_id, name=name, sort=position)
    db.session.add(option)
    _commit()
    return _option_snapshot(option)


def delete_option(option_id):
    """Delete an option and its values, then close the gap in sort order."""
    option = db.session.get(ProductOption, option_id)
    if not option:
        return None
    product_id = option.product_id
    db.session.delete(option)
    db.session.flush()

    remaining = (
        ProductOption.query.filter_by(product_id=product_id)
        .order_by(ProductOption.sort, ProductOption.id)
        .all()
    )
    for i, sibling in enumerate(remaining):
        sibling.sort = i
    _commit()
    return product_id


def get_option_product_id(option_id):
    option = db.session.get(ProductOption, option_id)
    return option.product_id if option else None


def create_option_value(option_id, text):
    option = db.session.get(ProductOption, option_id)
    if not option:
        return None
    value = ProductOptionValue(option_id=option_id, value=text, sort=len(option.values))
    db.session.add(value)
    _commit()
    return _value_snapshot(value)


def delete_option_value(value_id):
    """Delete a value, then close the gap in its option's sort order."""
    value = db.session.get(ProductOptionValue, value_id)
    if not value:
        return None
    option = value.option
    db.session.delete(value)
    db.session.flush()

    remaining = (
        ProductOptionValue.query.filter_by(option_id=option.id)
        .order_by(ProductOptionValue.sort, ProductOptionValue.id)
        .all()
    )
    for i, sibling in enumerate(remaining):
        sibling.sort = i
    _commit()
    return option.product_id


def reorder_options(product_id, option_ids):
    """Persist a new option order. ``option_ids`` must list every option once."""
    options = ProductOption.query.filter_by(product_id=product_id).all()
    by_id = {o.id: o for o in options}
    if len(option_ids) != len(by_id) or set(option_ids) != set(by_id):
        raise ValueError("Order must list every option of the product exactly once.")
    for i, option_id in enumerate(option_ids):
        by_id[option_id].sort = i
    _commit()


def reorder_option_values(option_id, value_ids):
    """Persist a new value order. ``value_ids`` must list every value once."""
    option = db.session.get(ProductOption, option_id)
    if not option:
        return None
    by_id = {v.id: v for v in option.values}
    if len(value_ids) != len(by_id) or set(value_ids) != set(by_id):
        raise ValueError("Order must list every value of the option exactly once.")
    for i, value_id in enumerate(value_ids):
        by_id[value_id].sort = i
    _commit()
    return option.product_id


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

def load_variants(product_id):
    variants = (
        ProductVariant.query.filter_by(product_id=product_id)
        .order_by(ProductVariant.id)
        .all()
    )
    return [_variant_snapshot(v) for v in variants]


def create_variant(product_id, pairs):
    """Persist a new, unavailable variant for exactly these pairs."""
    variant = ProductVariant(
        product_id=product_id,
        is_available=False,
        combination_key=combination_key(pairs),
    )
    for option_id, value_id in pairs:
        variant.pairs.append(
            ProductVariantOption(option_id=option_id, value_id=value_id)
        )
    db.session.add(variant)
    _commit()
    logger.info("Created variant %d [%s]", variant.id, variant.combination_key)
    return _variant_snapshot(variant)


def update_variant_availability(variant_id, is_available):
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        return None
    variant.is_available = bool(is_available)
    _commit()
    return _variant_snapshot(variant)


def update_variant_details(variant_id, sku, price_cents, image_url):
    """Set SKU, price override and image in one commit. Availability is untouched."""
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        return None
    variant.sku = sku
    variant.price_cents = price_cents
    variant.image_url = image_url
    _commit()
    return _variant_snapshot(variant)


def set_all_variants_availability(product_id, is_available, variant_ids, should_stop=None):
    """Set availability on the given variants of a product, one commit each.

    Returns ``(updated_ids, failures, cancelled)`` where ``failures`` maps
    variant id to an error message. Ids that belong to another product are
    reported as failures. When ``should_stop`` returns true no further
    updates are issued.
    """
    updated = []
    failures = {}
    for variant_id in variant_ids:
        if should_stop and should_stop():
            return updated, failures, True
        variant = db.session.get(ProductVariant, variant_id)
        if not variant or variant.product_id != product_id:
            failures[variant_id] = "variant not found"
            continue
        try:
            variant.is_available = bool(is_available)
            _commit()
            updated.append(variant_id)
        except SQLAlchemyError as e:
            logger.exception("Availability update failed for variant %s", variant_id)
            failures[variant_id] = str(e.__class__.__name__)
    return updated, failures, False


def delete_variant(variant_id):
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        return False
    db.session.delete(variant)
    _commit()
    return True
