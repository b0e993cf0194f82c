"""Tests for the pure combination engine."""
from catalog.services.combinations import (
    Combination,
    Option,
    OptionValue,
    Variant,
    combination_count,
    combination_key,
    combination_of,
    find_orphans,
    find_variant,
    generate,
    integrity_warnings,
    matches,
    price_range,
    reconcile,
    unmatched,
)


def make_options(*layout):
    """[("Size", ["S", "M"]), ...] → options with ids 1.. and value ids 100*i + j."""
    options = []
    for i, (name, labels) in enumerate(layout, start=1):
        values = tuple(
            OptionValue(id=i * 100 + j, label=label, sort=j, option_id=i)
            for j, label in enumerate(labels)
        )
        options.append(Option(id=i, name=name, sort=i - 1, values=values))
    return options


SIZE_COLOR = (("Size", ["S", "M"]), ("Color", ["Red", "Blue"]))


def materialize(combinations, start_id=1):
    return [
        Variant(id=start_id + i, pairs=c.pairs)
        for i, c in enumerate(combinations)
    ]


def test_generate_counts_and_uniqueness():
    options = make_options(("Size", ["S", "M", "L"]), ("Color", ["Red", "Blue"]), ("Fit", ["Slim", "Regular"]))
    combos = generate(options)

    assert len(combos) == 3 * 2 * 2
    assert all(len(c.pairs) == 3 for c in combos)
    assert len({c.key for c in combos}) == len(combos)
    assert combination_count(options) == 12


def test_generate_order_first_option_slowest():
    combos = generate(make_options(*SIZE_COLOR))
    assert [c.label for c in combos] == ["S / Red", "S / Blue", "M / Red", "M / Blue"]


def test_generate_is_deterministic():
    options = make_options(("Size", ["S", "M"]), ("Color", ["Red", "Blue", "Green"]))
    first = generate(options)
    second = generate(options)
    assert [c.pairs for c in first] == [c.pairs for c in second]


def test_option_without_values_is_skipped():
    options = make_options(("Size", ["S", "M"]), ("Strap", []), ("Color", ["Red"]))
    combos = generate(options)

    assert len(combos) == 2
    strap_id = options[1].id
    assert all(strap_id not in c.mapping for c in combos)
    assert combination_count(options) == 2


def test_no_values_anywhere_gives_no_combinations():
    assert generate(make_options(("Size", []), ("Color", []))) == []
    assert generate([]) == []
    assert combination_count([]) == 0


def test_combination_equality_ignores_order():
    a = Combination(pairs=((1, 100), (2, 200)))
    b = Combination(pairs=((2, 200), (1, 100)))
    assert a == b
    assert hash(a) == hash(b)
    assert combination_key(a.pairs) == combination_key(b.pairs) == "1:100|2:200"


def test_reconcile_links_matching_variants():
    options = make_options(*SIZE_COLOR)
    combos = generate(options)
    variants = [Variant(id=7, pairs=tuple(reversed(combos[3].pairs)), is_available=True)]

    reconciled = reconcile(combos, variants)

    assert [r.is_matched for r in reconciled] == [False, False, False, True]
    assert reconciled[3].variant.id == 7
    assert reconciled[3].is_available is True
    assert all(r.is_available is False for r in reconciled[:3])


def test_reconcile_is_idempotent():
    combos = generate(make_options(*SIZE_COLOR))
    variants = materialize(combos[:2])

    first = reconcile(combos, variants)
    second = reconcile(combos, variants)
    assert first == second


def test_subset_variant_does_not_match_superset():
    variant = Variant(id=1, pairs=((1, 100),))
    combination = Combination(pairs=((1, 100), (2, 203)))

    assert not matches(variant, combination)
    assert reconcile([combination], [variant])[0].variant is None


def test_size_color_scenario_single_available():
    combos = generate(make_options(*SIZE_COLOR))
    variants = materialize(combos)
    # (M, Blue) toggled available
    variants[3] = Variant(id=variants[3].id, pairs=variants[3].pairs, is_available=True)

    reconciled = reconcile(combos, variants)
    available = [r for r in reconciled if r.is_available]
    assert len(available) == 1
    assert available[0].label == "M / Blue"


def test_added_option_unmatches_existing_variants():
    before = generate(make_options(*SIZE_COLOR))
    variants = materialize(before)

    after_options = make_options(*SIZE_COLOR, ("Material", ["Cotton"]))
    after = generate(after_options)
    reconciled = reconcile(after, variants)

    assert len(after) == 4
    assert all(len(c.pairs) == 3 for c in after)
    assert len(unmatched(reconciled)) == 4
    assert len(find_orphans(reconciled, variants)) == 4


def test_deleted_value_orphans_its_variants():
    options = make_options(*SIZE_COLOR)
    variants = materialize(generate(options))

    # drop "Blue" from Color
    size, color = options
    trimmed = [size, Option(id=color.id, name=color.name, values=color.values[:1])]
    reconciled = reconcile(generate(trimmed), variants)
    orphans = find_orphans(reconciled, variants)

    assert len(reconciled) == 2
    assert all(r.is_matched for r in reconciled)
    assert sorted(v.id for v in orphans) == [2, 4]


def test_malformed_variant_is_unmatched_and_reported():
    options = make_options(*SIZE_COLOR)
    combos = generate(options)
    broken = Variant(id=9, pairs=((1, 100), (42, 4200)))

    reconciled = reconcile(combos, [broken])
    warnings = integrity_warnings(options, [broken])

    assert not any(r.is_matched for r in reconciled)
    assert [w.variant_id for w in warnings] == [9]
    assert "missing option 42" in warnings[0].message


def test_integrity_warnings_for_missing_value_and_duplicates():
    options = make_options(*SIZE_COLOR)
    variants = [
        Variant(id=1, pairs=((1, 100), (2, 200))),
        Variant(id=2, pairs=((2, 200), (1, 100))),
        Variant(id=3, pairs=((1, 199), (2, 200))),
        Variant(id=4, pairs=((1, 100), (1, 101))),
    ]
    messages = [w.message for w in integrity_warnings(options, variants)]

    assert any("variant 2 repeats the combination of variant 1" in m for m in messages)
    assert any("missing value 199" in m for m in messages)
    assert any("variant 4 has more than one value for option 1" in m for m in messages)


def test_duplicate_option_pairs_never_match():
    combination = Combination(pairs=((1, 100), (2, 200)))
    variant = Variant(id=1, pairs=((1, 100), (2, 200), (2, 200)))
    assert not matches(variant, combination)


def test_find_variant_needs_full_selection():
    combos = generate(make_options(*SIZE_COLOR))
    variants = materialize(combos)
    reconciled = reconcile(combos, variants)

    assert find_variant(reconciled, {2: 201, 1: 101}).id == 4
    assert find_variant(reconciled, {1: 101}) is None
    assert find_variant(reconciled, {}) is None


def test_price_range_falls_back_to_base_price():
    variants = [
        Variant(id=1, pairs=(), price_cents=1500),
        Variant(id=2, pairs=(), price_cents=None),
    ]
    result = price_range(variants, 1000)
    assert (result.min, result.max, result.has_range) == (1000, 1500, True)

    flat = price_range([Variant(id=3, pairs=())], 1000)
    assert (flat.min, flat.max, flat.has_range) == (1000, 1000, False)

    empty = price_range([], None)
    assert (empty.min, empty.max, empty.has_range) == (None, None, False)


def test_combination_of_agrees_with_generate():
    options = make_options(*SIZE_COLOR, ("Material", []))
    generated = generate(options)

    for combination in generated:
        found = combination_of(options, tuple(reversed(combination.pairs)))
        assert found == combination
        assert found.label == combination.label

    assert combination_of(options, ((1, 100),)) is None
    assert combination_of(options, ((1, 100), (2, 999))) is None
    assert combination_of(options, ((1, 100), (1, 101))) is None
    assert combination_of(options, ((1, 100), (2, 200), (3, 300))) is None
