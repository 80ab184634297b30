import pytest

from app.services.unit_normalizer import normalize_quantity

@pytest.mark.parametrize("quantity, from_unit, to_unit, expected", [
    (500, "g", "kg", 0.5),
    (2, "kg", "g", 2000),
    (250, "ml", "l", 0.25),
    (1.5, "l", "ml", 1500),
])
def test_known_conversions(quantity, from_unit, to_unit, expected):
    assert normalize_quantity(quantity, from_unit, to_unit) == pytest.approx(expected)

def test_same_unit_is_unchanged():
    assert normalize_quantity(3.25, "kg", "kg") == 3.25

def test_units_are_compared_case_and_space_insensitively():
    assert normalize_quantity(500, " G ", "KG") == pytest.approx(0.5)
    assert normalize_quantity(7, "Unit", "unit") == 7

def test_unknown_pair_passes_through_unconverted():
    assert normalize_quantity(3, "unit", "kg") == 3
    assert normalize_quantity(2, "tbsp", "ml") == 2
