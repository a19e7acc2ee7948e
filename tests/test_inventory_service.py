from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from inventory_fakes import MemoryGateway, make_product
from smartstock.errors import BackendUnavailable, NotFound, PartialSubmission, ValidationError
from smartstock.services.inventory_service import InventoryState
from smartstock.services.inventory_types import PurchaseOrderStatus
from smartstock.services.local_state_store import LocalStateStore


def _state(
    gateway: MemoryGateway,
    *,
    store: LocalStateStore | None = None,
    order_increments_stock: bool = False,
) -> InventoryState:
    state = InventoryState(gateway=gateway, store=store, order_increments_stock=order_increments_stock)
    state.load_products()
    return state


class InventoryOrderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.gateway = MemoryGateway(
            [
                make_product('P', barcode='111', supplier='Acme', current_stock=5),
                make_product('Q', barcode='222', supplier='Bolt Co', current_stock=1),
            ]
        )

    def test_order_is_split_into_one_purchase_order_per_supplier(self) -> None:
        state = _state(self.gateway)
        state.scan_to_order('111', 2)
        state.scan_to_order('222', 1)

        result = state.submit_order(notes='Weekly')

        self.assertEqual(result.suppliers, ['Acme', 'Bolt Co'])
        self.assertEqual(result.item_count, 2)
        self.assertTrue(result.ledger_written)
        self.assertEqual(len(self.gateway.order_ledger), 2)
        self.assertEqual(len(state.order), 0)
        self.assertEqual(state.purchase_orders, result.purchase_orders)
        self.assertEqual({order.notes for order in result.purchase_orders}, {'Weekly'})
        for product_id in ('P', 'Q'):
            self.assertIsNotNone(state.catalog.require(product_id).last_ordered)
            self.assertIsNotNone(self.gateway.products[product_id].last_ordered)
        self.assertEqual(state.catalog.require('P').current_stock, 5)

    def test_repeated_adds_merge_before_supplier_split(self) -> None:
        state = _state(self.gateway)
        state.add_to_order('P', 3)
        state.add_to_order('P', 2)
        self.assertEqual([(item.product_id, item.quantity) for item in state.order.items], [('P', 5)])
        state.add_to_order('Q', 1)

        orders = state.submit_order().purchase_orders

        self.assertEqual([order.supplier_name for order in orders], ['Acme', 'Bolt Co'])
        self.assertEqual(
            [(item.product_id, item.quantity) for order in orders for item in order.items],
            [('P', 5), ('Q', 1)],
        )

    def test_stock_is_incremented_when_enabled(self) -> None:
        state = _state(self.gateway, order_increments_stock=True)
        state.add_to_order('P', 3)

        state.submit_order()

        self.assertEqual(state.catalog.require('P').current_stock, 8)
        self.assertEqual(self.gateway.products['P'].current_stock, 8)

    def test_ledger_failure_alone_still_completes_submission(self) -> None:
        state = _state(self.gateway)
        state.add_to_order('P', 1)
        self.gateway.fail_ledger = True

        result = state.submit_order()

        self.assertFalse(result.ledger_written)
        self.assertEqual(len(state.order), 0)
        self.assertIsNotNone(self.gateway.products['P'].last_ordered)

    def test_product_failure_after_ledger_is_partial_and_rolled_back(self) -> None:
        state = _state(self.gateway)
        state.add_to_order('P', 2)
        state.add_to_order('Q', 1)
        self.gateway.fail_products = True

        with self.assertRaises(PartialSubmission) as ctx:
            state.submit_order()

        self.assertTrue(ctx.exception.ledger_written)
        self.assertEqual(len(self.gateway.order_ledger), 2)
        self.assertEqual(len(state.order), 2)
        self.assertEqual(state.purchase_orders, [])
        self.assertIsNone(state.catalog.require('P').last_ordered)

    def test_total_failure_is_backend_unavailable(self) -> None:
        state = _state(self.gateway)
        state.add_to_order('P', 2)
        self.gateway.fail_products = True
        self.gateway.fail_ledger = True

        with self.assertRaises(BackendUnavailable) as ctx:
            state.submit_order()

        self.assertNotIsInstance(ctx.exception, PartialSubmission)
        self.assertEqual(len(state.order), 1)

    def test_local_backend_keeps_optimistic_changes_on_failure(self) -> None:
        gateway = MemoryGateway([make_product('P', supplier='Acme')], is_remote=False)
        state = _state(gateway)
        state.add_to_order('P', 1)
        gateway.fail_products = True

        with self.assertRaises(PartialSubmission):
            state.submit_order()

        self.assertIsNotNone(state.catalog.require('P').last_ordered)
        self.assertEqual(len(state.order), 1)

    def test_empty_order_is_rejected(self) -> None:
        state = _state(self.gateway)
        with self.assertRaises(ValidationError):
            state.submit_order()
        self.assertEqual(self.gateway.order_ledger, [])

    def test_second_submission_is_rejected_while_one_is_in_flight(self) -> None:
        state = _state(self.gateway)
        state.add_to_order('P', 1)

        state._submit_lock.acquire()
        try:
            self.assertTrue(state.is_submitting)
            with self.assertRaises(ValidationError):
                state.submit_order()
            with self.assertRaises(ValidationError):
                state.submit_stocktake()
        finally:
            state._submit_lock.release()

        self.assertEqual(len(state.order), 1)
        self.assertEqual(self.gateway.order_ledger, [])
        self.assertFalse(state.is_submitting)

    def test_receiving_a_purchase_order_adds_stock_once(self) -> None:
        state = _state(self.gateway)
        state.add_to_order('P', 4)
        order = state.submit_order().purchase_orders[0]

        received = state.receive_purchase_order(order.id)

        self.assertEqual(received.status, PurchaseOrderStatus.RECEIVED)
        self.assertEqual(state.catalog.require('P').current_stock, 9)
        self.assertEqual(self.gateway.products['P'].current_stock, 9)
        with self.assertRaises(ValidationError):
            state.receive_purchase_order(order.id)
        with self.assertRaises(NotFound):
            state.receive_purchase_order('missing')

    def test_failed_receive_on_local_backend_can_be_retried(self) -> None:
        gateway = MemoryGateway([make_product('P', supplier='Acme', current_stock=5)], is_remote=False)
        state = _state(gateway)
        state.add_to_order('P', 4)
        order = state.submit_order().purchase_orders[0]

        gateway.fail_products = True
        with self.assertRaises(BackendUnavailable):
            state.receive_purchase_order(order.id)
        self.assertEqual(state.catalog.require('P').current_stock, 5)
        self.assertEqual(state.purchase_orders[0].status, PurchaseOrderStatus.SUBMITTED)

        gateway.fail_products = False
        state.receive_purchase_order(order.id)

        self.assertEqual(state.catalog.require('P').current_stock, 9)
        self.assertEqual(gateway.products['P'].current_stock, 9)

    def test_failed_incrementing_submit_on_local_backend_can_be_retried(self) -> None:
        gateway = MemoryGateway([make_product('P', supplier='Acme', current_stock=5)], is_remote=False)
        state = _state(gateway, order_increments_stock=True)
        state.add_to_order('P', 3)

        gateway.fail_products = True
        with self.assertRaises(PartialSubmission):
            state.submit_order()
        self.assertEqual(state.catalog.require('P').current_stock, 5)

        gateway.fail_products = False
        state.submit_order()

        self.assertEqual(state.catalog.require('P').current_stock, 8)
        self.assertEqual(gateway.products['P'].current_stock, 8)

    def test_items_added_during_submit_stay_pending(self) -> None:
        state = _state(self.gateway)
        state.add_to_order('P', 2)
        calls: list[int] = []

        def scan_while_submitting() -> None:
            if not calls:
                calls.append(1)
                state.add_to_order('Q', 2)
                state.add_to_order('P', 1)

        self.gateway.on_record_order = scan_while_submitting
        result = state.submit_order()

        self.assertEqual(
            [(item.product_id, item.quantity) for order in result.purchase_orders for item in order.items],
            [('P', 2)],
        )
        self.assertEqual([(item.product_id, item.quantity) for item in state.order.items], [('P', 1), ('Q', 2)])

    def test_unknown_barcode_is_not_found(self) -> None:
        state = _state(self.gateway)
        with self.assertRaises(NotFound):
            state.scan_to_order('999')


class InventoryStocktakeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.gateway = MemoryGateway([make_product('P', barcode='111', current_stock=10, min_stock=2)])

    def test_counted_stock_overwrites_current_stock(self) -> None:
        state = _state(self.gateway)
        item = state.scan_to_stocktake('111', 7)
        self.assertEqual(item.discrepancy, -3)

        result = state.submit_stocktake()

        self.assertTrue(result.ledger_written)
        self.assertEqual(result.low_stock, [])
        self.assertEqual(state.catalog.require('P').current_stock, 7)
        self.assertEqual(self.gateway.products['P'].current_stock, 7)
        self.assertEqual(self.gateway.stocktake_ledger[0][0].discrepancy, -3)
        self.assertEqual(len(state.stocktake), 0)

    def test_counts_below_minimum_are_reported(self) -> None:
        state = _state(self.gateway)
        state.add_to_stocktake('P', 1)

        result = state.submit_stocktake()

        self.assertEqual([product.id for product in result.low_stock], ['P'])

    def test_ledger_failure_alone_is_reported(self) -> None:
        state = _state(self.gateway)
        state.add_to_stocktake('P', 7)
        self.gateway.fail_ledger = True

        result = state.submit_stocktake()

        self.assertFalse(result.ledger_written)
        self.assertEqual(self.gateway.products['P'].current_stock, 7)

    def test_product_failure_after_ledger_is_partial_and_rolled_back(self) -> None:
        state = _state(self.gateway)
        state.add_to_stocktake('P', 7)
        self.gateway.fail_products = True

        with self.assertRaises(PartialSubmission):
            state.submit_stocktake()

        self.assertEqual(state.catalog.require('P').current_stock, 10)
        self.assertEqual(len(state.stocktake), 1)

    def test_items_counted_during_submit_stay_pending(self) -> None:
        gateway = MemoryGateway([make_product('P', current_stock=10), make_product('R', current_stock=4)])
        state = _state(gateway)
        state.add_to_stocktake('P', 7)
        gateway.on_stocktake_ledger = lambda: state.add_to_stocktake('R', 3)

        result = state.submit_stocktake()

        self.assertEqual([item.product_id for item in result.items], ['P'])
        self.assertEqual([item.product_id for item in state.stocktake.items], ['R'])
        self.assertEqual(state.catalog.require('R').current_stock, 4)


class InventoryCatalogTests(unittest.TestCase):
    def test_unconfigured_backend_cannot_load(self) -> None:
        gateway = MemoryGateway()
        gateway.configured = False
        state = InventoryState(gateway=gateway)

        self.assertFalse(state.check_configuration().ok)
        with self.assertRaises(BackendUnavailable):
            state.load_products()

    def test_failed_add_is_rolled_back_on_remote_backend(self) -> None:
        gateway = MemoryGateway()
        state = _state(gateway)
        gateway.fail_products = True

        with self.assertRaises(BackendUnavailable):
            state.add_product(make_product('P'))

        self.assertIsNone(state.catalog.get('P'))

    def test_import_rejects_duplicate_ids_and_skus(self) -> None:
        gateway = MemoryGateway([make_product('P')])
        state = _state(gateway)

        for products in (
            [make_product('A'), make_product('A', sku='SKU-other')],
            [make_product('A', sku='X-1'), make_product('B', sku='x-1')],
        ):
            with self.subTest(products=[product.id for product in products]):
                with self.assertRaises(ValidationError):
                    state.import_products(products)

        self.assertEqual(list(gateway.products), ['P'])
        self.assertEqual([product.id for product in state.catalog.products], ['P'])

    def test_update_stock_persists_product(self) -> None:
        gateway = MemoryGateway([make_product('P', current_stock=3)])
        state = _state(gateway)

        state.update_product_stock('P', 11)

        self.assertEqual(gateway.products['P'].current_stock, 11)
        with self.assertRaises(NotFound):
            state.update_product_stock('missing', 1)

    def test_state_survives_restart_through_local_cache(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = LocalStateStore(Path(tmp) / 'state.json')
            gateway = MemoryGateway([make_product('P', supplier='Acme')])
            state = _state(gateway, store=store)
            state.add_to_order('P', 2)
            submitted = state.submit_order().purchase_orders

            restarted = InventoryState(gateway=gateway, store=store)

            self.assertEqual(restarted.purchase_orders, submitted)
            self.assertEqual(restarted.catalog.require('P'), state.catalog.require('P'))
            self.assertEqual(len(restarted.order), 0)


if __name__ == '__main__':
    unittest.main()
