from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from smartstock.errors import BackendUnavailable, MalformedData
from smartstock.services.inventory_types import (
    Product,
    PurchaseOrder,
    product_from_record,
    product_to_record,
    purchase_order_from_record,
    purchase_order_to_record,
)

logger = logging.getLogger('smartstock.local_state')

EMPTY_STATE = {
    'products': [],
    'purchase_orders': [],
    'reorder_log': [],
    'stocktake_log': [],
}


class LocalStateStore:
    """JSON file holding the state that survives a restart.

    Pending orders and stocktakes are not stored here; they belong to a
    single session.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {key: list(value) for key, value in EMPTY_STATE.items()}
        try:
            raw = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as exc:
            raise BackendUnavailable(f'Local state file {self.path} is unreadable: {exc}') from exc
        if not isinstance(raw, dict):
            raise BackendUnavailable(f'Local state file {self.path} does not hold an object')
        for key, value in EMPTY_STATE.items():
            raw.setdefault(key, list(value))
        return raw

    def _write(self, state: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f'.{self.path.name}.', suffix='.tmp')
        except OSError as exc:
            raise BackendUnavailable(f'Unable to write local state file {self.path}: {exc}') from exc
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                json.dump(state, handle, indent=2)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise BackendUnavailable(f'Unable to write local state file {self.path}: {exc}') from exc
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def load_products(self) -> list[Product]:
        products: list[Product] = []
        for record in self._read()['products']:
            try:
                products.append(product_from_record(record))
            except MalformedData as exc:
                logger.warning('Skipping malformed cached product: %s', exc)
        return products

    def save_products(self, products: list[Product]) -> None:
        state = self._read()
        state['products'] = [product_to_record(product) for product in products]
        self._write(state)

    def load_purchase_orders(self) -> list[PurchaseOrder]:
        orders: list[PurchaseOrder] = []
        for record in self._read()['purchase_orders']:
            try:
                orders.append(purchase_order_from_record(record))
            except MalformedData as exc:
                logger.warning('Skipping malformed cached purchase order: %s', exc)
        return orders

    def save_purchase_orders(self, orders: list[PurchaseOrder]) -> None:
        state = self._read()
        state['purchase_orders'] = [purchase_order_to_record(order) for order in orders]
        self._write(state)

    def append_ledger(self, ledger: str, entries: list[dict]) -> None:
        state = self._read()
        state.setdefault(ledger, []).extend(entries)
        self._write(state)

    def read_ledger(self, ledger: str) -> list[dict]:
        return list(self._read().get(ledger, []))
