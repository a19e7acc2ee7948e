from __future__ import annotations

import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

from inventory_fakes import make_product
from smartstock.errors import BackendUnavailable, PartialSubmission
from smartstock.services.inventory_types import OrderItem, PurchaseOrder, StocktakeItem
from smartstock.services.local_state_store import LocalStateStore
from smartstock.services.local_sync_gateway import LocalSyncGateway


class LocalSyncGatewayTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / 'state.json'
        self.store = LocalStateStore(self.path)
        self.gateway = LocalSyncGateway(self.store)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_is_an_empty_catalog(self) -> None:
        self.assertTrue(self.gateway.check_configuration().ok)
        self.assertEqual(self.gateway.fetch_products(), [])

    def test_persisted_products_are_fetched_back(self) -> None:
        products = [
            make_product('P1', last_ordered=datetime(2024, 2, 3, 4, 5, tzinfo=timezone.utc)),
            make_product('P2', image_url='https://example.com/p2.png'),
        ]

        self.gateway.persist_products(products)

        self.assertEqual(LocalSyncGateway(LocalStateStore(self.path)).fetch_products(), products)

    def test_single_product_updates_in_place_or_appends(self) -> None:
        self.gateway.persist_products([make_product('P1'), make_product('P2')])

        self.gateway.persist_single_product(make_product('P1', current_stock=99))
        self.gateway.persist_single_product(make_product('P3'))

        fetched = self.gateway.fetch_products()
        self.assertEqual([product.id for product in fetched], ['P1', 'P2', 'P3'])
        self.assertEqual(fetched[0].current_stock, 99)

    def test_malformed_cached_product_is_skipped(self) -> None:
        self.path.write_text(
            json.dumps({'products': [{'id': 'P1', 'name': 'Good'}, {'id': 'P2', 'name': 'Bad', 'current_stock': 'x'}]}),
            encoding='utf-8',
        )

        self.assertEqual([product.id for product in self.gateway.fetch_products()], ['P1'])

    def test_corrupt_state_file_raises_backend_unavailable(self) -> None:
        self.path.write_text('{not json', encoding='utf-8')

        with self.assertRaises(BackendUnavailable):
            self.gateway.fetch_products()

    def test_failed_write_leaves_no_temp_file(self) -> None:
        self.gateway.persist_products([make_product('P1')])

        with patch('smartstock.services.local_state_store.json.dump', side_effect=TypeError('not serializable')):
            with self.assertRaises(BackendUnavailable):
                self.gateway.persist_products([make_product('P2')])

        self.assertEqual([path.name for path in self.path.parent.iterdir()], ['state.json'])
        self.assertEqual([product.id for product in self.gateway.fetch_products()], ['P1'])

    def test_record_order_appends_one_entry_per_item(self) -> None:
        items = (
            OrderItem(product_id='P1', barcode='111', name='Hammer', quantity=3, supplier='Acme'),
            OrderItem(product_id='P2', barcode='222', name='Saw', quantity=1, supplier='Acme'),
        )
        order = PurchaseOrder(
            id='PO-1',
            supplier_id='unknown',
            supplier_name='Acme',
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            items=items,
        )

        self.assertTrue(self.gateway.record_order(order, items))

        ledger = self.store.read_ledger('reorder_log')
        self.assertEqual([(entry['product_id'], entry['quantity']) for entry in ledger], [('P1', 3), ('P2', 1)])
        self.assertEqual({entry['order_id'] for entry in ledger}, {'PO-1'})

    def test_record_stocktake_writes_ledger_and_products(self) -> None:
        item = StocktakeItem(product_id='P1', barcode='BC-P1', name='Product P1', expected_quantity=10, actual_quantity=7)
        products = [make_product('P1', current_stock=7)]

        self.assertTrue(self.gateway.record_stocktake([item], products))

        self.assertEqual(self.gateway.fetch_products(), products)
        self.assertEqual(self.store.read_ledger('stocktake_log')[0]['discrepancy'], -3)

    def test_stocktake_product_failure_after_ledger_is_partial(self) -> None:
        item = StocktakeItem(product_id='P1', barcode='BC-P1', name='Product P1', expected_quantity=10, actual_quantity=7)

        def fail(products) -> None:
            raise BackendUnavailable('disk full')

        self.gateway.persist_products = fail
        with self.assertRaises(PartialSubmission) as ctx:
            self.gateway.record_stocktake([item], [make_product('P1', current_stock=7)])

        self.assertTrue(ctx.exception.ledger_written)
        self.assertEqual(len(self.store.read_ledger('stocktake_log')), 1)


if __name__ == '__main__':
    unittest.main()
