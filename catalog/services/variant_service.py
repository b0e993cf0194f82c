"""Variant matrix operations for one product.

Every operation loads a fresh snapshot from ``variant_store``, runs the
combination engine on it and, after any write has returned, reloads and
reconciles again so callers never render a stale matrix.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from flask import current_app
from redis.exceptions import LockError
from sqlalchemy.exc import SQLAlchemyError

from catalog import extensions
from catalog.services import audit, combinations, variant_store

logger = logging.getLogger(__name__)

SKU_MAX_LENGTH = 100
IMAGE_URL_MAX_LENGTH = 1024


class VariantWriteError(Exception):
    """A single variant write failed; ``label`` names the combination."""

    def __init__(self, label, message):
        super().__init__(f"{label}: {message}")
        self.label = label
        self.message = message


class CombinationLimitError(Exception):
    def __init__(self, count, limit):
        super().__init__(
            f"{count} combinations exceed the limit of {limit}; "
            f"remove some option values first."
        )
        self.count = count
        self.limit = limit


class BatchInProgressError(Exception):
    def __init__(self, product_id):
        super().__init__(f"Another variant batch is running for product {product_id}.")
        self.product_id = product_id


@dataclass
class VariantMatrix:
    product_id: int
    options: list
    reconciled: list
    orphans: list
    warnings: list
    combination_count: int
    limit: int
    variants: list = field(default_factory=list)

    @property
    def over_limit(self):
        return self.combination_count > self.limit

    @property
    def matched_count(self):
        return len(combinations.matched(self.reconciled))

    @property
    def unmatched_count(self):
        return len(combinations.unmatched(self.reconciled))

    @property
    def available_count(self):
        return sum(1 for item in self.reconciled if item.is_available)

    def find(self, variant_id):
        """The reconciled combination linked to ``variant_id``, if any.

        Over the limit nothing is enumerated, so only this variant is
        reconciled against the current options.
        """
        if self.over_limit:
            return self._reconcile_one(variant_id)
        for item in self.reconciled:
            if item.is_matched and item.variant.id == variant_id:
                return item
        return None

    def _reconcile_one(self, variant_id):
        variant = next((v for v in self.variants if v.id == variant_id), None)
        if variant is None:
            return None
        combination = combinations.combination_of(self.options, variant.pairs)
        if combination is None:
            return None
        # same tie-break as reconcile: the first variant with a key owns it
        owner = next(v for v in self.variants if v.key == variant.key)
        if owner.id != variant_id:
            return None
        return combinations.ReconciledCombination(
            combination=combination,
            variant=variant,
            is_available=bool(variant.is_available),
        )


@dataclass
class BatchResult:
    succeeded: list = field(default_factory=list)
    failed: list = field(default_factory=list)  # [(label, message)]
    skipped: int = 0
    cancelled: bool = False
    matrix: Optional[VariantMatrix] = None

    @property
    def notice(self):
        parts = [f"{len(self.succeeded)} succeeded", f"{len(self.failed)} failed"]
        if self.cancelled:
            parts.append(f"{self.skipped} not attempted (cancelled)")
        return ", ".join(parts)

    def as_dict(self):
        return {
            "succeeded": list(self.succeeded),
            "failed": [{"combination": label, "error": msg} for label, msg in self.failed],
            "skipped": self.skipped,
            "cancelled": self.cancelled,
        }


@dataclass
class VariantUpdate:
    label: str
    variant: combinations.Variant
    matrix: VariantMatrix


def orphan_label(variant):
    if variant.sku:
        return f"variant {variant.id} ({variant.sku})"
    return f"variant {variant.id}"


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------

def compute_matrix(product_id, options, variants, limit=None):
    """Generate and reconcile an already loaded snapshot.

    Above ``limit`` combinations nothing is enumerated; the matrix only
    reports the count so the caller can ask the operator to trim values.
    """
    if limit is None:
        limit = current_app.config["MAX_VARIANT_COMBINATIONS"]
    count = combinations.combination_count(options)
    warnings = combinations.integrity_warnings(options, variants)

    if count > limit:
        logger.warning(
            "Product %s has %d combinations (limit %d); not enumerating",
            product_id,
            count,
            limit,
        )
        return VariantMatrix(
            product_id, options, [], [], warnings, count, limit, variants
        )

    reconciled = combinations.reconcile(combinations.generate(options), variants)
    orphans = combinations.find_orphans(reconciled, variants)
    return VariantMatrix(
        product_id, options, reconciled, orphans, warnings, count, limit, variants
    )


def build_matrix(product_id):
    """Load options and variants and reconcile them."""
    options = variant_store.load_options(product_id)
    variants = variant_store.load_variants(product_id)
    return compute_matrix(product_id, options, variants)


# ---------------------------------------------------------------------------
# Batch guard
# ---------------------------------------------------------------------------

def _cancel_key(product_id):
    return f"variant_batch_cancel:{product_id}"


def _lock_key(product_id):
    return f"variant_batch:{product_id}"


@contextmanager
def batch_guard(product_id):
    """Serialize batches per product and expose a cancellation check.

    Yields a callable returning True once ``cancel_batch`` was called for
    the product. Without Redis the batch runs unguarded.
    """
    client = extensions.redis_client
    if client is None:
        logger.warning("Redis unavailable, batch for product %s runs without lock", product_id)
        yield lambda: False
        return

    lock = client.lock(
        _lock_key(product_id),
        timeout=current_app.config["VARIANT_BATCH_LOCK_TIMEOUT"],
    )
    if not lock.acquire(blocking=False):
        raise BatchInProgressError(product_id)
    try:
        # stale flag from an earlier batch; only the lock holder clears it
        client.delete(_cancel_key(product_id))
        yield lambda: bool(client.exists(_cancel_key(product_id)))
    finally:
        try:
            lock.release()
        except LockError:
            logger.warning("Batch lock for product %s expired before release", product_id)


def cancel_batch(product_id):
    """Ask a running batch to stop issuing writes. In-flight writes complete."""
    client = extensions.redis_client
    if client is None:
        logger.warning("Redis unavailable, cannot cancel batch for product %s", product_id)
        return False
    client.set(
        _cancel_key(product_id),
        b"1",
        ex=current_app.config["VARIANT_BATCH_LOCK_TIMEOUT"],
    )
    logger.info("Cancellation requested for product %s batch", product_id)
    return True


# ---------------------------------------------------------------------------
# Materialization
# ---------------------------------------------------------------------------

def generate_variants(product_id, operator_id=None):
    """Create a variant for every combination that has none yet.

    Matched combinations are left alone, so running this twice creates
    nothing the second time. One failed creation is recorded and the rest
    continue; already created variants are kept.
    """
    limit = current_app.config["MAX_VARIANT_COMBINATIONS"]
    result = BatchResult()

    with batch_guard(product_id) as should_stop:
        options = variant_store.load_options(product_id)
        count = combinations.combination_count(options)
        if count > limit:
            raise CombinationLimitError(count, limit)

        variants = variant_store.load_variants(product_id)
        reconciled = combinations.reconcile(combinations.generate(options), variants)
        pending = combinations.unmatched(reconciled)
        logger.info(
            "Generating %d variants for product %s (%d already exist)",
            len(pending),
            product_id,
            len(reconciled) - len(pending),
        )

        for i, item in enumerate(pending):
            if should_stop():
                result.cancelled = True
                result.skipped = len(pending) - i
                logger.info(
                    "Variant generation for product %s cancelled, %d skipped",
                    product_id,
                    result.skipped,
                )
                break
            try:
                variant_store.create_variant(product_id, item.combination.pairs)
                result.succeeded.append(item.label)
            except SQLAlchemyError as e:
                logger.exception(
                    "Could not create variant %s for product %s", item.label, product_id
                )
                result.failed.append((item.label, e.__class__.__name__))

    audit.record("GENERATE_VARIANTS", product_id, operator_id, result.as_dict())
    result.matrix = build_matrix(product_id)
    return result


# ---------------------------------------------------------------------------
# Single-variant mutation
# ---------------------------------------------------------------------------

def toggle_availability(product_id, variant_id, operator_id=None):
    """Flip availability of a matched variant.

    Returns None without writing when the variant is not linked to a
    current combination (unmatched, orphaned or from another product).
    """
    item = build_matrix(product_id).find(variant_id)
    if item is None:
        logger.warning(
            "Refusing to toggle variant %s of product %s: no current combination",
            variant_id,
            product_id,
        )
        return None

    new_value = not item.is_available
    try:
        variant = variant_store.update_variant_availability(variant_id, new_value)
    except SQLAlchemyError as e:
        logger.exception("Availability update failed for %s", item.label)
        raise VariantWriteError(item.label, "could not update availability") from e

    audit.record(
        "TOGGLE_AVAILABILITY",
        product_id,
        operator_id,
        {"variant_id": variant_id, "is_available": new_value},
    )
    return VariantUpdate(item.label, variant, build_matrix(product_id))


def parse_price(raw):
    """Price in major units → cents. Blank clears the override."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise ValueError("Price must be a number.")
    try:
        amount = Decimal(str(raw).strip().replace(",", "."))
    except InvalidOperation:
        raise ValueError("Price must be a number.")
    if not amount.is_finite() or amount < 0:
        raise ValueError("Price must be zero or more.")
    if amount.as_tuple().exponent < -2:
        raise ValueError("Price can have at most two decimals.")
    return int(amount * 100)


def _clean_text(raw, max_length, field_name):
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValueError(f"{field_name} is too long (max {max_length}).")
    return text


def update_details(product_id, variant_id, changes, operator_id=None):
    """Set SKU, price override and image of a matched variant in one write.

    ``changes`` may hold any of ``sku``, ``price`` (major units) and
    ``image_url``; missing keys keep the current value. Raises ValueError
    on invalid input, returns None when the variant is not matched.
    """
    item = build_matrix(product_id).find(variant_id)
    if item is None:
        logger.warning(
            "Refusing to edit variant %s of product %s: no current combination",
            variant_id,
            product_id,
        )
        return None

    current = item.variant
    sku = _clean_text(changes["sku"], SKU_MAX_LENGTH, "SKU") if "sku" in changes else current.sku
    price_cents = parse_price(changes["price"]) if "price" in changes else current.price_cents
    image_url = (
        _clean_text(changes["image_url"], IMAGE_URL_MAX_LENGTH, "Image URL")
        if "image_url" in changes
        else current.image_url
    )

    try:
        variant = variant_store.update_variant_details(variant_id, sku, price_cents, image_url)
    except SQLAlchemyError as e:
        logger.exception("Detail update failed for %s", item.label)
        raise VariantWriteError(item.label, "could not save details") from e

    audit.record(
        "EDIT_VARIANT",
        product_id,
        operator_id,
        {
            "variant_id": variant_id,
            "sku": sku,
            "price_cents": price_cents,
            "image_url": image_url,
        },
    )
    return VariantUpdate(item.label, variant, build_matrix(product_id))


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------

def set_all_availability(product_id, is_available, operator_id=None):
    """Set availability on every matched variant, one write each.

    Combinations without a variant are skipped, not materialized; orphaned
    variants are left as they are.
    """
    with batch_guard(product_id) as should_stop:
        matrix = build_matrix(product_id)
        labels = {
            item.variant.id: item.label for item in combinations.matched(matrix.reconciled)
        }
        updated, failures, cancelled = variant_store.set_all_variants_availability(
            product_id, is_available, list(labels), should_stop=should_stop
        )

    result = BatchResult(
        succeeded=[labels[variant_id] for variant_id in updated],
        failed=[(labels[variant_id], msg) for variant_id, msg in failures.items()],
        cancelled=cancelled,
        skipped=len(labels) - len(updated) - len(failures),
    )
    audit.record(
        "SET_ALL_AVAILABILITY",
        product_id,
        operator_id,
        dict(result.as_dict(), is_available=bool(is_available)),
    )
    result.matrix = build_matrix(product_id)
    return result


def purge_orphans(product_id, operator_id=None):
    """Delete variants that no current combination links to."""
    matrix = build_matrix(product_id)
    if matrix.over_limit:
        # orphans are unknown when the matrix was not enumerated
        return BatchResult(matrix=matrix)

    result = BatchResult()
    for variant in matrix.orphans:
        label = orphan_label(variant)
        try:
            variant_store.delete_variant(variant.id)
            result.succeeded.append(label)
        except SQLAlchemyError as e:
            logger.exception("Could not delete orphaned %s", label)
            result.failed.append((label, e.__class__.__name__))

    audit.record("PURGE_ORPHANS", product_id, operator_id, result.as_dict())
    result.matrix = build_matrix(product_id)
    return result
