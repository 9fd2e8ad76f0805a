from decimal import Decimal

import pytest

from tableside.domain.line_identity import clamp_quantity, dollars_from_cents, line_key, money
from tableside.domain.models import LineModifiers, SpiceLevel


def test_equal_modifiers_under_normalization_share_a_key():
    a = LineModifiers(
        spice_level="hot",
        allergens_avoid=["gluten", " Dairy ", "GLUTEN"],
        special_instructions="  No Onions ",
    )
    b = LineModifiers(
        spice_level=SpiceLevel.HOT,
        allergens_avoid=["DAIRY", "gluten"],
        special_instructions="no onions",
    )
    assert line_key("dish-1", a) == line_key("dish-1", b)


def test_no_modifiers_equals_empty_modifiers():
    assert line_key("dish-1") == line_key("dish-1", LineModifiers())
    assert line_key("dish-1", LineModifiers(special_instructions="   ")) == line_key("dish-1")


@pytest.mark.parametrize("other", [
    LineModifiers(spice_level="MILD"),
    LineModifiers(spice_on_side=True),
    LineModifiers(allergens_avoid=["PEANUT"]),
    LineModifiers(special_instructions="extra sauce"),
])
def test_any_differing_field_changes_the_key(other):
    assert line_key("dish-1", LineModifiers()) != line_key("dish-1", other)


def test_different_items_differ():
    assert line_key("dish-1") != line_key("dish-2")


def test_separator_in_ids_cannot_forge_fields():
    assert line_key("a|MILD") != line_key("a", LineModifiers(spice_level="MILD"))
    assert line_key("a", LineModifiers(special_instructions="x|y")) != line_key(
        "a", LineModifiers(special_instructions="x", allergens_avoid=["Y"])
    )


def test_allergens_render_sorted_upper_case():
    key = line_key("dish-1", LineModifiers(allergens_avoid=["soy", "dairy"]))
    assert key.split("|")[3] == "DAIRY,SOY"


def test_clamp_quantity():
    assert clamp_quantity(150) == 99
    assert clamp_quantity(-3) == 0
    assert clamp_quantity("7") == 7
    assert clamp_quantity("lots") == 0
    assert clamp_quantity(0, low=1) == 1


def test_money_formats_two_places():
    assert money(Decimal("28.25")) == "$28.25"
    assert money(Decimal("3")) == "$3.00"
    assert money(Decimal("0.005")) == "$0.01"
    assert money("not money") == "$0.00"
    assert money(None) == "$0.00"


def test_dollars_from_cents():
    assert dollars_from_cents(1250) == Decimal("12.50")
    assert dollars_from_cents("399") == Decimal("3.99")
    assert dollars_from_cents(None) == Decimal("0.00")
