from __future__ import annotations

from dataclasses import replace

from smartstock.services.inventory_types import OrderItem, Product


class OrderAggregator:
    def __init__(self) -> None:
        self._items: dict[str, OrderItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._items

    @property
    def items(self) -> list[OrderItem]:
        return list(self._items.values())

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def get(self, product_id: str) -> OrderItem | None:
        return self._items.get(product_id)

    def add_item(self, product: Product, quantity: int) -> OrderItem:
        existing = self._items.get(product.id)
        if existing is not None:
            merged = replace(existing, quantity=existing.quantity + quantity)
            self._items[product.id] = merged
            return merged

        item = OrderItem(
            product_id=product.id,
            barcode=product.barcode,
            name=product.name,
            quantity=quantity,
            supplier=product.supplier,
        )
        self._items[product.id] = item
        return item

    def update_quantity(self, product_id: str, quantity: int) -> OrderItem | None:
        existing = self._items.get(product_id)
        if existing is None:
            return None
        updated = replace(existing, quantity=quantity)
        self._items[product_id] = updated
        return updated

    def remove_item(self, product_id: str) -> None:
        self._items.pop(product_id, None)

    def clear(self) -> None:
        self._items.clear()

    def discard_submitted(self, submitted: list[OrderItem]) -> None:
        """Drop submitted quantities, keeping anything added after the snapshot."""
        for item in submitted:
            current = self._items.get(item.product_id)
            if current is None:
                continue
            remaining = current.quantity - item.quantity
            if remaining > 0:
                self._items[item.product_id] = replace(current, quantity=remaining)
            else:
                del self._items[item.product_id]
