"""Option/value combination engine.

Pure functions over snapshots: ``generate`` derives every combination of a
product's option values, ``reconcile`` links those combinations to the
variants already persisted for the product. Nothing here touches the
database or the Flask app, so callers can run it from views, CLI commands
and worker jobs alike.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"
PAIR_SEPARATOR = ":"


@dataclass(frozen=True)
class OptionValue:
    id: int
    label: str
    sort: int = 0
    option_id: Optional[int] = None


@dataclass(frozen=True)
class Option:
    id: int
    name: str
    sort: int = 0
    values: tuple = ()


@dataclass(frozen=True)
class Variant:
    id: int
    pairs: tuple  # ((option_id, value_id), ...)
    is_available: bool = False
    sku: Optional[str] = None
    price_cents: Optional[int] = None
    image_url: Optional[str] = None

    @property
    def key(self):
        return normalize_pairs(self.pairs)


@dataclass(frozen=True, eq=False)
class Combination:
    """One value picked from every contributing option.

    ``pairs`` keeps the option order the combination was generated in;
    ``labels`` runs parallel to it with (option name, value label).
    Equality ignores order.
    """

    pairs: tuple
    labels: tuple = ()

    @property
    def key(self):
        return normalize_pairs(self.pairs)

    @property
    def mapping(self):
        return dict(self.pairs)

    @property
    def label(self):
        return " / ".join(value_label for _, value_label in self.labels)

    def value_for(self, option_id):
        return self.mapping.get(option_id)

    def __eq__(self, other):
        if not isinstance(other, Combination):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)


@dataclass(frozen=True)
class ReconciledCombination:
    combination: Combination
    variant: Optional[Variant] = None
    is_available: bool = False

    @property
    def is_matched(self):
        return self.variant is not None

    @property
    def label(self):
        return self.combination.label


@dataclass(frozen=True)
class IntegrityWarning:
    variant_id: int
    message: str


@dataclass
class PriceRange:
    min: Optional[int] = None
    max: Optional[int] = None
    has_range: bool = False
    prices: list = field(default_factory=list, repr=False)


def normalize_pairs(pairs):
    """Canonical, order-independent form of a pair list.

    Duplicates are kept so a malformed pair list never collapses onto a
    shorter one.
    """
    return tuple(
        sorted(
            ((option_id, value_id) for option_id, value_id in pairs),
            key=lambda pair: (str(pair[0]), str(pair[1])),
        )
    )


def combination_key(pairs):
    """Serialized key cached on the variant row for lookups and uniqueness."""
    return KEY_SEPARATOR.join(
        f"{option_id}{PAIR_SEPARATOR}{value_id}"
        for option_id, value_id in normalize_pairs(pairs)
    )


def contributing_options(options):
    """Options that take part in combinations (those with at least one value)."""
    return [option for option in options if option.values]


def combination_count(options):
    """Number of combinations ``generate`` would return, without building them."""
    contributing = contributing_options(options)
    if not contributing:
        return 0
    total = 1
    for option in contributing:
        total *= len(option.values)
    return total


def generate(options):
    """Cartesian product of option values, first option varying slowest.

    Options without values are skipped so partially configured products
    still get combinations for the options that do have values. Returns an
    empty list when no option has values.
    """
    contributing = contributing_options(options)
    if not contributing:
        return []

    partials = [()]
    for option in contributing:
        partials = [
            partial + ((option, value),)
            for partial in partials
            for value in option.values
        ]

    return [
        Combination(
            pairs=tuple((option.id, value.id) for option, value in chosen),
            labels=tuple((option.name, value.label) for option, value in chosen),
        )
        for chosen in partials
    ]


def combination_of(options, pairs):
    """The current combination ``pairs`` spell out, or None.

    Same outcome as looking the pairs up in ``generate(options)`` without
    enumerating the product: one existing value for every contributing
    option and nothing else.
    """
    contributing = contributing_options(options)
    mapping = dict(pairs)
    if len(mapping) != len(pairs) or len(mapping) != len(contributing):
        return None

    chosen = []
    for option in contributing:
        value = next((v for v in option.values if v.id == mapping.get(option.id)), None)
        if value is None:
            return None
        chosen.append((option, value))
    return Combination(
        pairs=tuple((option.id, value.id) for option, value in chosen),
        labels=tuple((option.name, value.label) for option, value in chosen),
    )


def matches(variant, combination):
    """True when the variant realizes exactly this combination.

    Pair sets must be equal *and* the same size, so a variant created before
    an option was added never matches the grown combination.
    """
    if len(variant.pairs) != len(combination.pairs):
        return False
    return variant.key == combination.key


def reconcile(combinations, existing_variants):
    """Link each combination to the persisted variant that realizes it.

    Unmatched combinations come back with no variant and
    ``is_available=False``. Variants matching no combination are left out;
    use ``find_orphans`` to collect them.
    """
    index = {}
    for variant in existing_variants:
        # first row wins if the uniqueness invariant was ever broken
        index.setdefault(variant.key, variant)

    reconciled = []
    for combination in combinations:
        variant = index.get(combination.key)
        if variant is not None and not matches(variant, combination):
            variant = None
        reconciled.append(
            ReconciledCombination(
                combination=combination,
                variant=variant,
                is_available=bool(variant.is_available) if variant else False,
            )
        )
    return reconciled


def unmatched(reconciled):
    return [item for item in reconciled if not item.is_matched]


def matched(reconciled):
    return [item for item in reconciled if item.is_matched]


def find_orphans(reconciled, existing_variants):
    """Persisted variants that no current combination links to."""
    linked = {item.variant.id for item in reconciled if item.is_matched}
    return [variant for variant in existing_variants if variant.id not in linked]


def integrity_warnings(options, existing_variants):
    """Describe variants whose pairs cannot belong to the current options.

    Such variants are always unmatched; this only reports them.
    """
    known = {option.id: {value.id for value in option.values} for option in options}
    warnings = []
    seen_keys = {}

    for variant in existing_variants:
        option_ids = [option_id for option_id, _ in variant.pairs]
        duplicated = sorted(
            {str(o) for o in option_ids if option_ids.count(o) > 1}
        )
        for option_id in duplicated:
            warnings.append(
                IntegrityWarning(
                    variant.id,
                    f"variant {variant.id} has more than one value for option {option_id}",
                )
            )

        for option_id, value_id in variant.pairs:
            if option_id not in known:
                warnings.append(
                    IntegrityWarning(
                        variant.id,
                        f"variant {variant.id} references missing option {option_id}",
                    )
                )
            elif value_id not in known[option_id]:
                warnings.append(
                    IntegrityWarning(
                        variant.id,
                        f"variant {variant.id} references missing value {value_id} "
                        f"of option {option_id}",
                    )
                )

        if variant.key in seen_keys:
            warnings.append(
                IntegrityWarning(
                    variant.id,
                    f"variant {variant.id} repeats the combination of variant "
                    f"{seen_keys[variant.key]}",
                )
            )
        else:
            seen_keys[variant.key] = variant.id

    for warning in warnings:
        logger.warning("Variant integrity: %s", warning.message)
    return warnings


def find_variant(reconciled, selection):
    """Matched variant for a complete option → value selection, or None."""
    if not selection:
        return None
    wanted = normalize_pairs(selection.items())
    for item in reconciled:
        if item.is_matched and item.combination.key == wanted:
            return item.variant
    return None


def price_range(variants, base_price_cents):
    """Min/max price over variants, each falling back to the base price."""
    prices = [
        variant.price_cents if variant.price_cents is not None else base_price_cents
        for variant in variants
    ]
    prices = [price for price in prices if price is not None]
    if not prices:
        return PriceRange(min=base_price_cents, max=base_price_cents, has_range=False)
    low, high = min(prices), max(prices)
    return PriceRange(min=low, max=high, has_range=low != high, prices=prices)
