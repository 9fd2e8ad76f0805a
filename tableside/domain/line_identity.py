"""Cart line identity, quantity policy and money formatting.

Two additions to the cart are the same line when their identity keys are
equal. The key is a pure function of the menu item id and the normalized
modifiers, so semantically equal customizations always collapse.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional
from urllib.parse import quote

KEY_SEPARATOR = "|"
SIDE_FLAG = "SIDE"
MAX_QUANTITY = 99
CENT = Decimal("0.01")


def normalize_allergens(values: Optional[Iterable[str]]) -> frozenset:
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    return frozenset(str(v).strip().upper() for v in values if str(v).strip())


def normalize_instructions(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    cleaned = str(text).strip()
    return cleaned or None


def line_key(menu_item_id: str, modifiers=None) -> str:
    spice = ""
    side = ""
    allergens = ""
    note = ""
    if modifiers is not None:
        if modifiers.spice_level is not None:
            spice = modifiers.spice_level.value
        if modifiers.spice_on_side:
            side = SIDE_FLAG
        allergens = ",".join(quote(a, safe="") for a in sorted(modifiers.allergens_avoid))
        note = (modifiers.special_instructions or "").strip().lower()

    # menu ids and free text are escaped so they can never contain the separator
    return KEY_SEPARATOR.join([
        quote(str(menu_item_id), safe=""),
        spice,
        side,
        allergens,
        quote(note, safe=""),
    ])


def clamp_quantity(value, low: int = 0, high: int = MAX_QUANTITY) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        qty = low
    return max(low, min(high, qty))


def round_money(amount) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def money(amount) -> str:
    """Display form of a currency amount, e.g. ``$28.25``."""
    try:
        value = round_money(amount)
    except (ArithmeticError, TypeError, ValueError):
        value = round_money(0)
    return f"${value}"


def dollars_from_cents(cents) -> Decimal:
    try:
        return (Decimal(int(round(float(cents)))) / 100).quantize(CENT)
    except (TypeError, ValueError, OverflowError):
        return Decimal("0.00")
