from __future__ import annotations

from dataclasses import replace

from smartstock.services.inventory_types import Product, StocktakeItem


class StocktakeAggregator:
    """Counted quantities for one stocktake session.

    The first scan of a product fixes its expected quantity; later scans of the
    same product are ignored and only ``update_quantity`` changes the count.
    """

    def __init__(self) -> None:
        self._items: dict[str, StocktakeItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._items

    @property
    def items(self) -> list[StocktakeItem]:
        return list(self._items.values())

    def get(self, product_id: str) -> StocktakeItem | None:
        return self._items.get(product_id)

    def add_item(self, product: Product, counted_quantity: int) -> StocktakeItem:
        existing = self._items.get(product.id)
        if existing is not None:
            return existing

        item = StocktakeItem(
            product_id=product.id,
            barcode=product.barcode,
            name=product.name,
            expected_quantity=product.current_stock,
            actual_quantity=counted_quantity,
        )
        self._items[product.id] = item
        return item

    def update_quantity(self, product_id: str, actual_quantity: int) -> StocktakeItem | None:
        existing = self._items.get(product_id)
        if existing is None:
            return None
        updated = replace(existing, actual_quantity=actual_quantity)
        self._items[product_id] = updated
        return updated

    def remove_item(self, product_id: str) -> None:
        self._items.pop(product_id, None)

    def clear(self) -> None:
        self._items.clear()

    def discard_submitted(self, submitted: list[StocktakeItem]) -> None:
        for item in submitted:
            if self._items.get(item.product_id) == item:
                del self._items[item.product_id]

    def discrepancies(self) -> list[StocktakeItem]:
        return [item for item in self._items.values() if item.discrepancy != 0]
