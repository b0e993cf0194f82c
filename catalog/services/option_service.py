"""Option and value editing.

Order only affects presentation; combination identity is the set of ids,
so reordering never touches variants.
"""
import logging
from catalog.services import audit, variant_store

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100


def _clean_name(raw, what):
    name = str(raw).strip() if raw is not None else ""
    if not name:
        raise ValueError(f"{what} is required.")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"{what} is too long (max {NAME_MAX_LENGTH}).")
    return name


def add_option(product_id, name, operator_id=None):
    name = _clean_name(name, "Option name")
    option = variant_store.create_option(product_id, name)
    if option:
        audit.record("CREATE_OPTION", product_id, operator_id, {"option_id": option.id, "name": name})
    return option


def remove_option(option_id, operator_id=None):
    """Delete an option. Variants using it become orphans and are kept."""
    product_id = variant_store.delete_option(option_id)
    if product_id is None:
        return None
    logger.info("Option %s deleted; its variants are now orphaned", option_id)
    audit.record("DELETE_OPTION", product_id, operator_id, {"option_id": option_id})
    return product_id


def add_option_value(option_id, text, operator_id=None):
    text = _clean_name(text, "Value")
    value = variant_store.create_option_value(option_id, text)
    if value:
        product_id = variant_store.get_option_product_id(option_id)
        audit.record(
            "CREATE_OPTION_VALUE",
            product_id,
            operator_id,
            {"option_id": option_id, "value_id": value.id, "value": text},
        )
    return value


def remove_option_value(value_id, operator_id=None):
    product_id = variant_store.delete_option_value(value_id)
    if product_id is None:
        return None
    audit.record("DELETE_OPTION_VALUE", product_id, operator_id, {"value_id": value_id})
    return product_id


def reorder_options(product_id, option_ids, operator_id=None):
    variant_store.reorder_options(product_id, option_ids)
    audit.record("REORDER_OPTIONS", product_id, operator_id, {"option_ids": option_ids})


def reorder_option_values(option_id, value_ids, operator_id=None):
    product_id = variant_store.reorder_option_values(option_id, value_ids)
    if product_id is None:
        return None
    audit.record(
        "REORDER_OPTION_VALUES",
        product_id,
        operator_id,
        {"option_id": option_id, "value_ids": value_ids},
    )
    return product_id
