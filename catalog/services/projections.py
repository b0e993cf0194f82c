"""List and grid views over a reconciled combination set.

Both are pure projections of ``VariantMatrix`` data; neither keeps state
or repeats any matching logic.
"""
from catalog.services.combinations import contributing_options, normalize_pairs


class GridAmbiguityError(ValueError):
    """Raised when a grid would have to pick between several combinations per cell."""


def _price(cents):
    return None if cents is None else cents / 100


def variant_payload(variant):
    if variant is None:
        return None
    return {
        "id": variant.id,
        "is_available": variant.is_available,
        "sku": variant.sku,
        "price": _price(variant.price_cents),
        "image_url": variant.image_url,
    }


def list_projection(matrix):
    """Flat rows in generation order plus summary counts.

    ``editable`` is only true for rows with a persisted variant; callers
    must not offer availability or detail controls otherwise.
    """
    rows = []
    for item in matrix.reconciled:
        combination = item.combination
        rows.append(
            {
                "label": combination.label,
                "key": [list(pair) for pair in combination.key],
                "options": [
                    {
                        "option_id": option_id,
                        "option": option_name,
                        "value_id": value_id,
                        "value": value_label,
                    }
                    for (option_id, value_id), (option_name, value_label) in zip(
                        combination.pairs, combination.labels
                    )
                ],
                "variant": variant_payload(item.variant),
                "is_available": item.is_available,
                "editable": item.is_matched,
            }
        )

    return {
        "view": "list",
        "rows": rows,
        "summary": {
            "total": matrix.combination_count,
            "matched": matrix.matched_count,
            "unmatched": matrix.unmatched_count,
            "available": matrix.available_count,
            "orphaned": len(matrix.orphans),
            "over_limit": matrix.over_limit,
            "limit": matrix.limit,
        },
        "orphans": [
            dict(variant_payload(v), pairs=[list(p) for p in v.pairs])
            for v in matrix.orphans
        ],
        "warnings": [w.message for w in matrix.warnings],
    }


def grid_axes(options):
    """First two options that take part in combinations, or None."""
    contributing = contributing_options(options)
    if len(contributing) < 2:
        return None
    return contributing[0], contributing[1]


def grid_projection(matrix, fixed=None):
    """Two-axis pivot: rows are the first option's values, columns the second's.

    With more than two contributing options every other option must be
    pinned to one value through ``fixed`` (option id → value id); otherwise
    a cell could stand for several combinations and GridAmbiguityError is
    raised.
    """
    fixed = dict(fixed or {})
    axes = grid_axes(matrix.options)
    if axes is None:
        return {
            "view": "grid",
            "available": False,
            "reason": "The grid needs at least two options with values.",
        }

    row_option, column_option = axes
    others = [
        option
        for option in contributing_options(matrix.options)
        if option.id not in (row_option.id, column_option.id)
    ]
    for option in others:
        if option.id not in fixed:
            raise GridAmbiguityError(
                f"Choose a value for option '{option.name}' to show the grid."
            )
        if fixed[option.id] not in {value.id for value in option.values}:
            raise GridAmbiguityError(
                f"Value {fixed[option.id]} does not belong to option '{option.name}'."
            )
    pinned = [(option.id, fixed[option.id]) for option in others]

    by_key = {item.combination.key: item for item in matrix.reconciled}
    rows = []
    for row_value in row_option.values:
        cells = []
        for column_value in column_option.values:
            key = normalize_pairs(
                [(row_option.id, row_value.id), (column_option.id, column_value.id)]
                + pinned
            )
            item = by_key.get(key)
            if item is None:
                cells.append(None)
                continue
            cells.append(
                {
                    "label": item.label,
                    "variant": variant_payload(item.variant),
                    "is_available": item.is_available,
                    "editable": item.is_matched,
                }
            )
        rows.append({"value_id": row_value.id, "value": row_value.label, "cells": cells})

    return {
        "view": "grid",
        "available": True,
        "row_option": {"id": row_option.id, "name": row_option.name},
        "column_option": {"id": column_option.id, "name": column_option.name},
        "columns": [{"value_id": v.id, "value": v.label} for v in column_option.values],
        "fixed": [{"option_id": o, "value_id": v} for o, v in pinned],
        "rows": rows,
    }


def options_payload(options):
    return [
        {
            "id": option.id,
            "name": option.name,
            "sort": option.sort,
            "values": [
                {"id": value.id, "value": value.label, "sort": value.sort}
                for value in option.values
            ],
        }
        for option in options
    ]
