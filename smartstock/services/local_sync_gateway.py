from __future__ import annotations

import logging

from smartstock.errors import BackendUnavailable
from smartstock.services.inventory_types import (
    OrderItem,
    Product,
    PurchaseOrder,
    StocktakeItem,
    format_timestamp,
    utc_now,
)
from smartstock.services.local_state_store import LocalStateStore
from smartstock.services.sync_gateway import ConfigurationStatus, SyncGateway

logger = logging.getLogger('smartstock.sync.local')


class LocalSyncGateway(SyncGateway):
    name = 'local'
    is_remote = False

    def __init__(self, store: LocalStateStore) -> None:
        self.store = store

    def check_configuration(self) -> ConfigurationStatus:
        return ConfigurationStatus(ok=True, missing=[])

    def fetch_products(self) -> list[Product]:
        return self.store.load_products()

    def persist_products(self, products: list[Product]) -> None:
        self.store.save_products(list(products))

    def persist_single_product(self, product: Product) -> None:
        products = self.store.load_products()
        for index, existing in enumerate(products):
            if existing.id == product.id:
                products[index] = product
                break
        else:
            products.append(product)
        self.store.save_products(products)

    def record_order(self, order: PurchaseOrder, items: list[OrderItem] | tuple[OrderItem, ...]) -> bool:
        timestamp = format_timestamp(utc_now())
        entries = [
            {
                'timestamp': timestamp,
                'order_id': order.id,
                'supplier': item.supplier,
                'product_id': item.product_id,
                'barcode': item.barcode,
                'name': item.name,
                'quantity': item.quantity,
            }
            for item in items
        ]
        try:
            self.store.append_ledger('reorder_log', entries)
        except BackendUnavailable as exc:
            logger.warning('Reorder ledger write failed for order %s: %s', order.id, exc)
            return False
        return True

    def _append_stocktake_ledger(self, items: list[StocktakeItem]) -> None:
        timestamp = format_timestamp(utc_now())
        self.store.append_ledger(
            'stocktake_log',
            [
                {
                    'timestamp': timestamp,
                    'product_id': item.product_id,
                    'barcode': item.barcode,
                    'name': item.name,
                    'expected_quantity': item.expected_quantity,
                    'actual_quantity': item.actual_quantity,
                    'discrepancy': item.discrepancy,
                }
                for item in items
            ],
        )
