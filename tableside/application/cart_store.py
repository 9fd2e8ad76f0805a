import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter

from tableside.application.persisted import read_value, write_value
from tableside.core import keys
from tableside.domain.line_identity import MAX_QUANTITY, clamp_quantity, line_key
from tableside.domain.models import (
    CartLine,
    CartState,
    LineModifiers,
    MenuItemRef,
    PersistedCart,
    SessionScope,
)
from tableside.interfaces.IKeyValueStore import IKeyValueStore

logger = logging.getLogger(__name__)

_cart_adapter = TypeAdapter(PersistedCart)

# Sentinel so edit_line can tell "keep modifiers" from "drop modifiers"
_KEEP = object()


def merge_lines(lines: List[CartLine]) -> List[CartLine]:
    """Collapse lines sharing an identity key, keeping first-seen order."""
    merged: Dict[str, CartLine] = {}
    for line in lines:
        existing = merged.get(line.key)
        if existing is None:
            merged[line.key] = line
        else:
            merged[line.key] = existing.model_copy(
                update={"quantity": min(MAX_QUANTITY, existing.quantity + line.quantity)}
            )
    return list(merged.values())


def order_lines_from_cart(lines: List[CartLine]) -> List[Dict[str, Any]]:
    """Order-submission shape of the cart lines."""
    payload = []
    for line in lines:
        mods = line.modifiers or LineModifiers()
        payload.append({
            "menuItemId": line.menu_item_id,
            "quantity": line.quantity,
            "spiceLevel": mods.spice_level.value if mods.spice_level else None,
            "spiceOnSide": mods.spice_on_side,
            "allergensAvoid": sorted(mods.allergens_avoid),
            "specialInstructions": mods.special_instructions,
        })
    return payload


class CartStore:
    """Per-device cart, one per (slug, table)."""

    def __init__(self, store: IKeyValueStore):
        self.store = store

    def load(self, slug: str, table_number: str) -> CartState:
        persisted = read_value(self.store, keys.cart_key(slug, table_number), _cart_adapter)
        if persisted is None:
            return CartState(slug=slug, table_number=table_number)
        return CartState(slug=slug, table_number=table_number, lines=merge_lines(persisted.lines))

    def save(self, state: CartState) -> None:
        write_value(
            self.store,
            keys.cart_key(state.slug, state.table_number),
            _cart_adapter,
            PersistedCart(lines=state.lines),
        )

    def add(
        self,
        scope: SessionScope,
        item: MenuItemRef,
        qty: int = 1,
        modifiers: Optional[LineModifiers] = None,
    ) -> CartState:
        q = clamp_quantity(qty, low=1)
        key = line_key(item.menu_item_id, modifiers)
        state = self.load(scope.slug, scope.table_number)

        lines = list(state.lines)
        for idx, line in enumerate(lines):
            if line.key == key:
                lines[idx] = line.model_copy(update={"quantity": min(MAX_QUANTITY, line.quantity + q)})
                break
        else:
            lines.append(CartLine(
                menu_item_id=item.menu_item_id,
                name=item.name,
                price=item.price,
                image_url=item.image_url,
                quantity=q,
                modifiers=modifiers,
            ))

        return self._commit(state, lines)

    def set_quantity(self, scope: SessionScope, ident: str, quantity: int, by_key: bool = False) -> CartState:
        """Overwrite the quantity of every line of a menu item, or of one line when ``by_key``.

        Zero removes every matching line. Unknown ids leave the cart untouched.
        """
        q = clamp_quantity(quantity)
        state = self.load(scope.slug, scope.table_number)

        def matches(line: CartLine) -> bool:
            return line.key == ident if by_key else line.menu_item_id == ident

        if q == 0:
            lines = [line for line in state.lines if not matches(line)]
        else:
            lines = [line.model_copy(update={"quantity": q}) if matches(line) else line for line in state.lines]
        return self._commit(state, lines)

    def edit_line(self, scope: SessionScope, key: str, modifiers=_KEEP, quantity: Optional[int] = None) -> CartState:
        """Change a line's modifiers and/or quantity; a new identity merges into an existing line."""
        state = self.load(scope.slug, scope.table_number)
        existing = next((line for line in state.lines if line.key == key), None)
        if existing is None:
            return state

        new_qty = existing.quantity if quantity is None else clamp_quantity(quantity)
        new_mods = existing.modifiers if modifiers is _KEEP else modifiers
        without = [line for line in state.lines if line.key != key]
        if new_qty <= 0:
            return self._commit(state, without)

        new_key = line_key(existing.menu_item_id, new_mods)
        for idx, line in enumerate(without):
            if line.key == new_key:
                without[idx] = line.model_copy(update={"quantity": min(MAX_QUANTITY, line.quantity + new_qty)})
                return self._commit(state, without)

        edited = CartLine(
            menu_item_id=existing.menu_item_id,
            name=existing.name,
            price=existing.price,
            image_url=existing.image_url,
            quantity=new_qty,
            modifiers=new_mods,
        )
        return self._commit(state, without + [edited])

    def clear(self, scope: SessionScope) -> CartState:
        state = CartState(slug=scope.slug, table_number=scope.table_number)
        self.save(state)
        return state

    def total(self, scope: SessionScope) -> Decimal:
        return self.load(scope.slug, scope.table_number).total()

    def count(self, scope: SessionScope) -> int:
        return self.load(scope.slug, scope.table_number).count()

    def _commit(self, state: CartState, lines: List[CartLine]) -> CartState:
        updated = CartState(slug=state.slug, table_number=state.table_number, lines=lines)
        self.save(updated)
        return updated
