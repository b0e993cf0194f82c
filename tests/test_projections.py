"""Tests for the list and grid projections."""
import pytest
from catalog.services.combinations import Variant, generate
from catalog.services.projections import (
    GridAmbiguityError,
    grid_projection,
    list_projection,
)
from catalog.services.variant_service import compute_matrix
from tests.test_combinations import SIZE_COLOR, make_options


def _matrix(options, variants=(), limit=100):
    return compute_matrix(1, options, list(variants), limit=limit)


def test_list_rows_follow_generation_order():
    options = make_options(*SIZE_COLOR)
    combos = generate(options)
    variants = [Variant(id=5, pairs=combos[1].pairs, is_available=True, price_cents=1250)]

    view = list_projection(_matrix(options, variants))

    assert [row["label"] for row in view["rows"]] == ["S / Red", "S / Blue", "M / Red", "M / Blue"]
    assert [row["editable"] for row in view["rows"]] == [False, True, False, False]
    assert view["rows"][1]["variant"]["price"] == 12.5
    assert view["rows"][0]["variant"] is None
    assert view["rows"][0]["options"][0] == {
        "option_id": 1, "option": "Size", "value_id": 100, "value": "S",
    }
    assert view["summary"] == {
        "total": 4,
        "matched": 1,
        "unmatched": 3,
        "available": 1,
        "orphaned": 0,
        "over_limit": False,
        "limit": 100,
    }


def test_list_reports_orphans_and_warnings():
    options = make_options(*SIZE_COLOR)
    stale = Variant(id=8, pairs=((1, 100), (9, 900)))

    view = list_projection(_matrix(options, [stale]))

    assert view["summary"]["orphaned"] == 1
    assert view["orphans"][0]["id"] == 8
    assert view["warnings"] == ["variant 8 references missing option 9"]


def test_list_over_limit_does_not_enumerate():
    options = make_options(("Size", ["S", "M", "L"]), ("Color", ["Red", "Blue"]))
    view = list_projection(_matrix(options, limit=5))

    assert view["rows"] == []
    assert view["summary"]["total"] == 6
    assert view["summary"]["over_limit"] is True


def test_grid_two_options():
    options = make_options(*SIZE_COLOR)
    combos = generate(options)
    variants = [Variant(id=3, pairs=combos[3].pairs, is_available=True)]

    grid = grid_projection(_matrix(options, variants))

    assert grid["available"] is True
    assert grid["row_option"]["name"] == "Size"
    assert [c["value"] for c in grid["columns"]] == ["Red", "Blue"]
    m_row = grid["rows"][1]
    assert m_row["value"] == "M"
    assert m_row["cells"][1]["label"] == "M / Blue"
    assert m_row["cells"][1]["is_available"] is True
    assert m_row["cells"][0]["editable"] is False


def test_grid_needs_two_options_with_values():
    grid = grid_projection(_matrix(make_options(("Size", ["S"]), ("Color", []))))
    assert grid["available"] is False


def test_grid_with_third_option_requires_fixed_value():
    options = make_options(*SIZE_COLOR, ("Material", ["Cotton", "Linen"]))
    matrix = _matrix(options)

    with pytest.raises(GridAmbiguityError):
        grid_projection(matrix)

    with pytest.raises(GridAmbiguityError):
        grid_projection(matrix, fixed={3: 100})

    grid = grid_projection(matrix, fixed={3: 301})
    assert grid["fixed"] == [{"option_id": 3, "value_id": 301}]
    assert grid["rows"][0]["cells"][0]["label"] == "S / Red / Linen"


def test_grid_skips_empty_option_for_axes():
    options = make_options(("Strap", []), *SIZE_COLOR)
    grid = grid_projection(_matrix(options))
    assert grid["row_option"]["name"] == "Size"
    assert grid["column_option"]["name"] == "Color"
