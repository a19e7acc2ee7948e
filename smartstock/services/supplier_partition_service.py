from __future__ import annotations

import secrets
import time
from datetime import datetime

from smartstock.services.inventory_types import (
    OrderItem,
    PurchaseOrder,
    PurchaseOrderStatus,
    Supplier,
    utc_now,
)
from smartstock.services.supplier_directory import find_supplier

UNKNOWN_SUPPLIER_ID = 'unknown'

_BASE36 = '0123456789abcdefghijklmnopqrstuvwxyz'
_issued_ids: set[str] = set()


def _random_suffix(length: int = 5) -> str:
    return ''.join(secrets.choice(_BASE36) for _ in range(length))


def generate_order_id() -> str:
    while True:
        candidate = f'{int(time.time() * 1000)}{_random_suffix()}'
        if candidate not in _issued_ids:
            _issued_ids.add(candidate)
            return candidate


def group_by_supplier(items: list[OrderItem]) -> dict[str, list[OrderItem]]:
    grouped: dict[str, list[OrderItem]] = {}
    for item in items:
        grouped.setdefault(item.supplier, []).append(item)
    return grouped


def partition_by_supplier(
    items: list[OrderItem],
    suppliers: list[Supplier] | tuple[Supplier, ...],
    *,
    now: datetime | None = None,
    notes: str | None = None,
    status: PurchaseOrderStatus = PurchaseOrderStatus.SUBMITTED,
) -> list[PurchaseOrder]:
    order_date = now or utc_now()
    orders: list[PurchaseOrder] = []
    for supplier_name, supplier_items in group_by_supplier(items).items():
        supplier = find_supplier(suppliers, supplier_name)
        orders.append(
            PurchaseOrder(
                id=generate_order_id(),
                supplier_id=supplier.id if supplier else UNKNOWN_SUPPLIER_ID,
                supplier_name=supplier_name,
                date=order_date,
                items=tuple(supplier_items),
                status=status,
                notes=notes,
            )
        )
    return orders
