from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum

from smartstock.errors import MalformedData


class PurchaseOrderStatus(str, Enum):
    DRAFT = 'draft'
    SUBMITTED = 'submitted'
    RECEIVED = 'received'


@dataclass(frozen=True)
class Product:
    id: str
    barcode: str
    sku: str
    name: str
    description: str = ''
    category: str = 'Uncategorized'
    supplier: str = 'Unknown Supplier'
    unit: str = 'each'
    price: Decimal = Decimal('0')
    cost: Decimal = Decimal('0')
    current_stock: int = 0
    min_stock: int = 0
    image_url: str | None = None
    last_ordered: datetime | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock < self.min_stock


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    email: str = ''
    phone: str = ''
    address: str = ''
    contact_person: str = ''


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    barcode: str
    name: str
    quantity: int
    supplier: str


@dataclass(frozen=True)
class StocktakeItem:
    product_id: str
    barcode: str
    name: str
    expected_quantity: int
    actual_quantity: int

    @property
    def discrepancy(self) -> int:
        return self.actual_quantity - self.expected_quantity


@dataclass(frozen=True)
class PurchaseOrder:
    id: str
    supplier_id: str
    supplier_name: str
    date: datetime
    items: tuple[OrderItem, ...] = field(default_factory=tuple)
    status: PurchaseOrderStatus = PurchaseOrderStatus.SUBMITTED
    notes: str | None = None

    def with_status(self, status: PurchaseOrderStatus) -> PurchaseOrder:
        return replace(self, status=status)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_timestamp(raw: object) -> datetime | None:
    if raw is None or raw == '':
        return None
    if isinstance(raw, datetime):
        value = raw
    else:
        try:
            value = datetime.fromisoformat(str(raw).strip().replace('Z', '+00:00'))
        except ValueError as exc:
            raise MalformedData(f'Invalid timestamp: {raw!r}') from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def _decimal(raw: object, field_name: str) -> Decimal:
    if raw is None or raw == '':
        return Decimal('0')
    try:
        return Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise MalformedData(f'Invalid {field_name}: {raw!r}') from exc


def _stock(raw: object, field_name: str) -> int:
    if raw is None or raw == '':
        return 0
    try:
        value = int(str(raw).strip())
    except ValueError as exc:
        raise MalformedData(f'Invalid {field_name}: {raw!r}') from exc
    if value < 0:
        raise MalformedData(f'{field_name} cannot be negative: {value}')
    return value


def _text(raw: object) -> str:
    return '' if raw is None else str(raw).strip()


def product_to_record(product: Product) -> dict:
    return {
        'id': product.id,
        'barcode': product.barcode,
        'sku': product.sku,
        'name': product.name,
        'description': product.description,
        'category': product.category,
        'supplier': product.supplier,
        'unit': product.unit,
        'price': str(product.price),
        'cost': str(product.cost),
        'current_stock': product.current_stock,
        'min_stock': product.min_stock,
        'image_url': product.image_url,
        'last_ordered': format_timestamp(product.last_ordered),
    }


def product_from_record(record: dict) -> Product:
    product_id = _text(record.get('id'))
    name = _text(record.get('name'))
    if not product_id:
        raise MalformedData('Product record is missing an id')
    if not name:
        raise MalformedData(f'Product {product_id} is missing a name')
    return Product(
        id=product_id,
        barcode=_text(record.get('barcode')),
        sku=_text(record.get('sku')),
        name=name,
        description=_text(record.get('description')),
        category=_text(record.get('category')) or 'Uncategorized',
        supplier=_text(record.get('supplier')) or 'Unknown Supplier',
        unit=_text(record.get('unit')) or 'each',
        price=_decimal(record.get('price'), 'price'),
        cost=_decimal(record.get('cost'), 'cost'),
        current_stock=_stock(record.get('current_stock'), 'current_stock'),
        min_stock=_stock(record.get('min_stock'), 'min_stock'),
        image_url=_text(record.get('image_url')) or None,
        last_ordered=parse_timestamp(record.get('last_ordered')),
    )


def order_item_to_record(item: OrderItem) -> dict:
    return {
        'product_id': item.product_id,
        'barcode': item.barcode,
        'name': item.name,
        'quantity': item.quantity,
        'supplier': item.supplier,
    }


def purchase_order_to_record(order: PurchaseOrder) -> dict:
    return {
        'id': order.id,
        'supplier_id': order.supplier_id,
        'supplier_name': order.supplier_name,
        'date': format_timestamp(order.date),
        'items': [order_item_to_record(item) for item in order.items],
        'status': order.status.value,
        'notes': order.notes,
    }


def purchase_order_from_record(record: dict) -> PurchaseOrder:
    try:
        items = tuple(
            OrderItem(
                product_id=_text(raw['product_id']),
                barcode=_text(raw.get('barcode')),
                name=_text(raw.get('name')),
                quantity=int(raw['quantity']),
                supplier=_text(raw.get('supplier')),
            )
            for raw in record.get('items', [])
        )
        status = PurchaseOrderStatus(record.get('status') or PurchaseOrderStatus.SUBMITTED.value)
        order_date = parse_timestamp(record['date'])
        order_id = _text(record['id'])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedData(f'Invalid purchase order record: {exc}') from exc
    if order_date is None or not order_id:
        raise MalformedData('Purchase order record is missing an id or date')
    return PurchaseOrder(
        id=order_id,
        supplier_id=_text(record.get('supplier_id')) or 'unknown',
        supplier_name=_text(record.get('supplier_name')),
        date=order_date,
        items=items,
        status=status,
        notes=record.get('notes'),
    )
