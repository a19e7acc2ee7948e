from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from smartstock.errors import NotFound, ValidationError
from smartstock.services.inventory_types import Product


def validate_product(product: Product) -> None:
    if not product.name.strip():
        raise ValidationError('Product name is required')
    if not product.sku.strip():
        raise ValidationError('SKU is required')
    if product.price < Decimal('0'):
        raise ValidationError('Price must be a positive number')
    if product.cost < Decimal('0'):
        raise ValidationError('Cost must be a positive number')
    if product.current_stock < 0:
        raise ValidationError('Current stock must be a positive number')
    if product.min_stock < 0:
        raise ValidationError('Minimum stock must be a positive number')


def validate_unique(products: list[Product]) -> None:
    seen_ids: set[str] = set()
    seen_skus: set[str] = set()
    for product in products:
        sku = product.sku.strip().lower()
        if product.id in seen_ids:
            raise ValidationError(f'Duplicate product id {product.id}')
        if sku in seen_skus:
            raise ValidationError(f'Duplicate SKU {product.sku}')
        seen_ids.add(product.id)
        seen_skus.add(sku)


class CatalogStore:
    """In-memory product list with an id index and a barcode index.

    Callers read the optimistic state straight from here; the sync gateway is
    only consulted by the inventory state when changes are committed.
    """

    def __init__(self, products: list[Product] | None = None) -> None:
        self._products: dict[str, Product] = {}
        self._by_barcode: dict[str, str] = {}
        self.replace_all(products or [])

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self):
        return iter(list(self._products.values()))

    @property
    def products(self) -> list[Product]:
        return list(self._products.values())

    def snapshot(self) -> list[Product]:
        return self.products

    def replace_all(self, products: list[Product]) -> None:
        self._products = {}
        self._by_barcode = {}
        for product in products:
            self._store(product)

    def _store(self, product: Product) -> None:
        previous = self._products.get(product.id)
        if previous is not None and previous.barcode and self._by_barcode.get(previous.barcode) == product.id:
            del self._by_barcode[previous.barcode]
        self._products[product.id] = product
        if product.barcode:
            self._by_barcode[product.barcode] = product.id

    def get(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def require(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise NotFound(f'Product {product_id} not found')
        return product

    def get_by_barcode(self, barcode: str) -> Product | None:
        product_id = self._by_barcode.get(barcode.strip())
        if product_id is None:
            return None
        return self._products.get(product_id)

    def upsert(self, product: Product) -> Product:
        self._store(product)
        return product

    def add_product(self, product: Product) -> Product:
        validate_product(product)
        sku = product.sku.strip().lower()
        for existing in self._products.values():
            if existing.id != product.id and existing.sku.strip().lower() == sku:
                raise ValidationError('A product with this SKU already exists')
        return self.upsert(product)

    def overwrite_stock(self, product_id: str, new_stock: int) -> Product:
        product = self.require(product_id)
        return self.upsert(replace(product, current_stock=max(int(new_stock), 0)))

    def apply_stock_delta(self, product_id: str, delta: int) -> Product:
        product = self.require(product_id)
        return self.upsert(replace(product, current_stock=max(product.current_stock + int(delta), 0)))

    def low_stock(self) -> list[Product]:
        return [product for product in self._products.values() if product.is_low_stock]
