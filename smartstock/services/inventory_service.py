from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace

from smartstock.config import settings
from smartstock.errors import BackendUnavailable, NotFound, PartialSubmission, ValidationError
from smartstock.services.catalog_service import CatalogStore, validate_product, validate_unique
from smartstock.services.inventory_types import (
    OrderItem,
    Product,
    PurchaseOrder,
    PurchaseOrderStatus,
    StocktakeItem,
    Supplier,
)
from smartstock.services.local_state_store import LocalStateStore
from smartstock.services.order_service import OrderAggregator
from smartstock.services.stocktake_service import StocktakeAggregator
from smartstock.services.supplier_directory import DEFAULT_SUPPLIERS
from smartstock.services.supplier_partition_service import partition_by_supplier
from smartstock.services.sync_gateway import ConfigurationStatus, SyncGateway

logger = logging.getLogger('smartstock.inventory')


@dataclass(frozen=True)
class OrderSubmission:
    purchase_orders: list[PurchaseOrder]
    updated_products: list[Product]
    ledger_written: bool

    @property
    def suppliers(self) -> list[str]:
        return [order.supplier_name for order in self.purchase_orders]

    @property
    def item_count(self) -> int:
        return sum(len(order.items) for order in self.purchase_orders)


@dataclass(frozen=True)
class StocktakeSubmission:
    items: list[StocktakeItem]
    ledger_written: bool
    low_stock: list[Product] = field(default_factory=list)


class InventoryState:
    """State container for one inventory session.

    Owns the catalog, the pending order and stocktake, and the purchase order
    history. Local changes are applied optimistically and then confirmed with
    the sync gateway; when a remote backend rejects them the catalog is rolled
    back, while the local backend keeps the change. Pending collections are
    cleared only after a confirmed submit.
    """

    def __init__(
        self,
        *,
        gateway: SyncGateway,
        store: LocalStateStore | None = None,
        suppliers: list[Supplier] | tuple[Supplier, ...] = DEFAULT_SUPPLIERS,
        order_increments_stock: bool | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.suppliers = suppliers
        self.order_increments_stock = (
            settings.order_increments_stock if order_increments_stock is None else order_increments_stock
        )
        self.catalog = CatalogStore(store.load_products() if store else [])
        self.purchase_orders: list[PurchaseOrder] = store.load_purchase_orders() if store else []
        self.order = OrderAggregator()
        self.stocktake = StocktakeAggregator()
        self._submit_lock = threading.Lock()

    @property
    def is_submitting(self) -> bool:
        return self._submit_lock.locked()

    def check_configuration(self) -> ConfigurationStatus:
        return self.gateway.check_configuration()

    def _persist_cache(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save_products(self.catalog.products)
            self.store.save_purchase_orders(self.purchase_orders)
        except BackendUnavailable as exc:
            logger.warning('Local cache write failed: %s', exc)

    def _rollback(self, snapshot: list[Product], *, stock_deltas: bool = False) -> None:
        # Stock deltas are always undone; a retry reapplies them from the snapshot.
        if not self.gateway.is_remote and not stock_deltas:
            return
        self.catalog.replace_all(snapshot)
        logger.info('Rolled back optimistic catalog changes after %s backend failure', self.gateway.name)

    # Catalog

    def load_products(self) -> list[Product]:
        products = self.gateway.fetch_products()
        self.catalog.replace_all(products)
        self._persist_cache()
        logger.info('Loaded %d products from %s backend', len(products), self.gateway.name)
        return products

    def add_product(self, product: Product) -> Product:
        snapshot = self.catalog.snapshot()
        self.catalog.add_product(product)
        try:
            self.gateway.persist_single_product(product)
        except BackendUnavailable:
            self._rollback(snapshot)
            raise
        self._persist_cache()
        return product

    def update_product(self, product: Product) -> Product:
        validate_product(product)
        self.catalog.require(product.id)
        snapshot = self.catalog.snapshot()
        self.catalog.upsert(product)
        try:
            self.gateway.persist_single_product(product)
        except BackendUnavailable:
            self._rollback(snapshot)
            raise
        self._persist_cache()
        return product

    def update_product_stock(self, product_id: str, new_stock: int) -> Product:
        product = self.catalog.require(product_id)
        return self.update_product(replace(product, current_stock=max(int(new_stock), 0)))

    def import_products(self, products: list[Product]) -> list[Product]:
        for product in products:
            validate_product(product)
        validate_unique(products)
        snapshot = self.catalog.snapshot()
        self.catalog.replace_all(products)
        try:
            self.gateway.persist_products(products)
        except BackendUnavailable:
            self._rollback(snapshot)
            raise
        self._persist_cache()
        logger.info('Imported %d products into %s backend', len(products), self.gateway.name)
        return products

    def find_by_barcode(self, barcode: str) -> Product:
        product = self.catalog.get_by_barcode(barcode)
        if product is None:
            raise NotFound(f'No product with barcode {barcode}')
        return product

    # Pending order

    def add_to_order(self, product_id: str, quantity: int = 1) -> OrderItem:
        return self.order.add_item(self.catalog.require(product_id), quantity)

    def scan_to_order(self, barcode: str, quantity: int = 1) -> OrderItem:
        return self.order.add_item(self.find_by_barcode(barcode), quantity)

    def submit_order(self, *, notes: str | None = None) -> OrderSubmission:
        if not self._submit_lock.acquire(blocking=False):
            raise ValidationError('A submission is already in progress')
        try:
            return self._submit_order(notes=notes)
        finally:
            self._submit_lock.release()

    def _submit_order(self, *, notes: str | None) -> OrderSubmission:
        items = self.order.items
        if not items:
            raise ValidationError('Order has no items')

        orders = partition_by_supplier(items, self.suppliers, notes=notes)
        ordered_at = orders[0].date
        snapshot = self.catalog.snapshot()

        changed: list[Product] = []
        for item in items:
            product = self.catalog.get(item.product_id)
            if product is None:
                logger.warning('Ordered product %s is no longer in the catalog', item.product_id)
                continue
            stock = product.current_stock + item.quantity if self.order_increments_stock else product.current_stock
            changed.append(self.catalog.upsert(replace(product, last_ordered=ordered_at, current_stock=stock)))

        ledger_results = [self.gateway.record_order(order, order.items) for order in orders]

        try:
            for product in changed:
                self.gateway.persist_single_product(product)
        except BackendUnavailable as exc:
            self._rollback(snapshot, stock_deltas=self.order_increments_stock)
            if any(ledger_results):
                raise PartialSubmission(
                    f'Order was logged but product updates were not saved: {exc}',
                    ledger_written=True,
                ) from exc
            raise

        self.purchase_orders.extend(orders)
        self.order.discard_submitted(items)
        self._persist_cache()

        ledger_written = all(ledger_results)
        if not ledger_written:
            logger.warning('Order submitted but %d of %d ledger writes failed', ledger_results.count(False), len(orders))
        logger.info('Submitted %d purchase orders covering %d items', len(orders), len(items))
        return OrderSubmission(purchase_orders=orders, updated_products=changed, ledger_written=ledger_written)

    def receive_purchase_order(self, order_id: str) -> PurchaseOrder:
        for index, order in enumerate(self.purchase_orders):
            if order.id == order_id:
                break
        else:
            raise NotFound(f'Purchase order {order_id} not found')
        if order.status == PurchaseOrderStatus.RECEIVED:
            raise ValidationError('Purchase order has already been received')

        snapshot = self.catalog.snapshot()
        changed: list[Product] = []
        for item in order.items:
            if self.catalog.get(item.product_id) is None:
                logger.warning('Received product %s is no longer in the catalog', item.product_id)
                continue
            changed.append(self.catalog.apply_stock_delta(item.product_id, item.quantity))

        try:
            for product in changed:
                self.gateway.persist_single_product(product)
        except BackendUnavailable:
            self._rollback(snapshot, stock_deltas=True)
            raise

        received = order.with_status(PurchaseOrderStatus.RECEIVED)
        self.purchase_orders[index] = received
        self._persist_cache()
        return received

    # Pending stocktake

    def add_to_stocktake(self, product_id: str, counted_quantity: int) -> StocktakeItem:
        return self.stocktake.add_item(self.catalog.require(product_id), counted_quantity)

    def scan_to_stocktake(self, barcode: str, counted_quantity: int) -> StocktakeItem:
        return self.stocktake.add_item(self.find_by_barcode(barcode), counted_quantity)

    def submit_stocktake(self) -> StocktakeSubmission:
        if not self._submit_lock.acquire(blocking=False):
            raise ValidationError('A submission is already in progress')
        try:
            return self._submit_stocktake()
        finally:
            self._submit_lock.release()

    def _submit_stocktake(self) -> StocktakeSubmission:
        items = self.stocktake.items
        if not items:
            raise ValidationError('Stocktake has no items')

        snapshot = self.catalog.snapshot()
        counted: list[Product] = []
        for item in items:
            if self.catalog.get(item.product_id) is None:
                logger.warning('Counted product %s is no longer in the catalog', item.product_id)
                continue
            counted.append(self.catalog.overwrite_stock(item.product_id, item.actual_quantity))

        try:
            ledger_written = self.gateway.record_stocktake(items, self.catalog.products)
        except BackendUnavailable:
            self._rollback(snapshot)
            raise

        self.stocktake.discard_submitted(items)
        self._persist_cache()
        logger.info('Submitted stocktake with %d items', len(items))
        return StocktakeSubmission(
            items=items,
            ledger_written=ledger_written,
            low_stock=[product for product in counted if product.is_low_stock],
        )
