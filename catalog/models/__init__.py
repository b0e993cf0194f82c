from catalog.models.product import Product
from catalog.models.option import ProductOption, ProductOptionValue
from catalog.models.variant import ProductVariant, ProductVariantOption
from catalog.models.audit_log import AuditLog

__all__ = [
    "Product",
    "ProductOption",
    "ProductOptionValue",
    "ProductVariant",
    "ProductVariantOption",
    "AuditLog",
]
