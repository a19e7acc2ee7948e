from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from smartstock.dependencies import get_inventory_state
from smartstock.services.csv_import_service import export_products_csv, parse_products_csv
from smartstock.services.inventory_service import InventoryState
from smartstock.services.inventory_types import (
    OrderItem,
    Product,
    StocktakeItem,
    order_item_to_record,
    product_to_record,
    purchase_order_to_record,
)

router = APIRouter(prefix='/api', tags=['inventory'])


class ProductPayload(BaseModel):
    id: str
    barcode: str
    sku: str
    name: str
    description: str = ''
    category: str = 'Uncategorized'
    supplier: str = 'Unknown Supplier'
    unit: str = 'each'
    price: Decimal = Field(default=Decimal('0'), ge=0)
    cost: Decimal = Field(default=Decimal('0'), ge=0)
    current_stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    image_url: str | None = None
    last_ordered: datetime | None = None

    def to_product(self) -> Product:
        return Product(**self.model_dump())


class ScanPayload(BaseModel):
    product_id: str | None = None
    barcode: str | None = None
    quantity: int = Field(default=1, ge=0)


class QuantityPayload(BaseModel):
    quantity: int = Field(ge=0)


class SubmitOrderPayload(BaseModel):
    notes: str | None = None


class CsvImportPayload(BaseModel):
    content: str


def _stocktake_item_record(item: StocktakeItem) -> dict:
    return {
        'product_id': item.product_id,
        'barcode': item.barcode,
        'name': item.name,
        'expected_quantity': item.expected_quantity,
        'actual_quantity': item.actual_quantity,
        'discrepancy': item.discrepancy,
    }


def _order_item_or_404(item: OrderItem | None, product_id: str) -> dict:
    if item is None:
        raise HTTPException(status_code=404, detail=f'Product {product_id} is not in the current order')
    return order_item_to_record(item)


# Products


@router.get('/products')
def list_products(state: InventoryState = Depends(get_inventory_state)) -> dict:
    return {'products': [product_to_record(product) for product in state.catalog.products]}


@router.post('/products/sync')
def sync_products(state: InventoryState = Depends(get_inventory_state)) -> dict:
    products = state.load_products()
    return {'success': True, 'count': len(products)}


@router.post('/products', status_code=201)
def create_product(payload: ProductPayload, state: InventoryState = Depends(get_inventory_state)) -> dict:
    product = state.add_product(payload.to_product())
    return {'success': True, 'product': product_to_record(product)}


@router.put('/products/{product_id}')
def update_product(
    product_id: str,
    payload: ProductPayload,
    state: InventoryState = Depends(get_inventory_state),
) -> dict:
    if payload.id != product_id:
        raise HTTPException(status_code=400, detail='Product id does not match the URL')
    product = state.update_product(payload.to_product())
    return {'success': True, 'product': product_to_record(product)}


@router.get('/products/low-stock')
def low_stock_products(state: InventoryState = Depends(get_inventory_state)) -> dict:
    return {'products': [product_to_record(product) for product in state.catalog.low_stock()]}


@router.get('/products/barcode/{barcode}')
def product_by_barcode(barcode: str, state: InventoryState = Depends(get_inventory_state)) -> dict:
    return {'product': product_to_record(state.find_by_barcode(barcode))}


@router.post('/products/import')
def import_products(payload: CsvImportPayload, state: InventoryState = Depends(get_inventory_state)) -> dict:
    products = state.import_products(parse_products_csv(payload.content))
    return {'success': True, 'count': len(products)}


@router.get('/products/export', response_class=PlainTextResponse)
def export_products(state: InventoryState = Depends(get_inventory_state)) -> str:
    return export_products_csv(state.catalog.products)


# Pending order


@router.get('/order/items')
def list_order_items(state: InventoryState = Depends(get_inventory_state)) -> dict:
    return {
        'items': [order_item_to_record(item) for item in state.order.items],
        'total_quantity': state.order.total_quantity,
    }


@router.post('/order/items')
def add_order_item(payload: ScanPayload, state: InventoryState = Depends(get_inventory_state)) -> dict:
    if payload.quantity < 1:
        raise HTTPException(status_code=400, detail='Quantity must be at least 1')
    if payload.barcode:
        item = state.scan_to_order(payload.barcode, payload.quantity)
    elif payload.product_id:
        item = state.add_to_order(payload.product_id, payload.quantity)
    else:
        raise HTTPException(status_code=400, detail='A product_id or barcode is required')
    return {'item': order_item_to_record(item)}


@router.patch('/order/items/{product_id}')
def update_order_item(
    product_id: str,
    payload: QuantityPayload,
    state: InventoryState = Depends(get_inventory_state),
) -> dict:
    if payload.quantity < 1:
        raise HTTPException(status_code=400, detail='Quantity must be at least 1')
    return {'item': _order_item_or_404(state.order.update_quantity(product_id, payload.quantity), product_id)}


@router.delete('/order/items/{product_id}')
def remove_order_item(product_id: str, state: InventoryState = Depends(get_inventory_state)) -> dict:
    state.order.remove_item(product_id)
    return {'success': True}


@router.delete('/order/items')
def clear_order(state: InventoryState = Depends(get_inventory_state)) -> dict:
    state.order.clear()
    return {'success': True}


@router.post('/order/submit')
def submit_order(payload: SubmitOrderPayload, state: InventoryState = Depends(get_inventory_state)) -> dict:
    result = state.submit_order(notes=payload.notes)
    return {
        'success': True,
        'ledger_written': result.ledger_written,
        'suppliers': result.suppliers,
        'item_count': result.item_count,
        'purchase_orders': [purchase_order_to_record(order) for order in result.purchase_orders],
    }


# Pending stocktake


@router.get('/stocktake/items')
def list_stocktake_items(state: InventoryState = Depends(get_inventory_state)) -> dict:
    return {'items': [_stocktake_item_record(item) for item in state.stocktake.items]}


@router.post('/stocktake/items')
def add_stocktake_item(payload: ScanPayload, state: InventoryState = Depends(get_inventory_state)) -> dict:
    if payload.barcode:
        item = state.scan_to_stocktake(payload.barcode, payload.quantity)
    elif payload.product_id:
        item = state.add_to_stocktake(payload.product_id, payload.quantity)
    else:
        raise HTTPException(status_code=400, detail='A product_id or barcode is required')
    return {'item': _stocktake_item_record(item)}


@router.patch('/stocktake/items/{product_id}')
def update_stocktake_item(
    product_id: str,
    payload: QuantityPayload,
    state: InventoryState = Depends(get_inventory_state),
) -> dict:
    item = state.stocktake.update_quantity(product_id, payload.quantity)
    if item is None:
        raise HTTPException(status_code=404, detail=f'Product {product_id} is not in the current stocktake')
    return {'item': _stocktake_item_record(item)}


@router.delete('/stocktake/items/{product_id}')
def remove_stocktake_item(product_id: str, state: InventoryState = Depends(get_inventory_state)) -> dict:
    state.stocktake.remove_item(product_id)
    return {'success': True}


@router.delete('/stocktake/items')
def clear_stocktake(state: InventoryState = Depends(get_inventory_state)) -> dict:
    state.stocktake.clear()
    return {'success': True}


@router.post('/stocktake/submit')
def submit_stocktake(state: InventoryState = Depends(get_inventory_state)) -> dict:
    result = state.submit_stocktake()
    return {
        'success': True,
        'ledger_written': result.ledger_written,
        'items': [_stocktake_item_record(item) for item in result.items],
        'low_stock': [product_to_record(product) for product in result.low_stock],
    }


# Purchase orders


@router.get('/purchase-orders')
def list_purchase_orders(state: InventoryState = Depends(get_inventory_state)) -> dict:
    return {'purchase_orders': [purchase_order_to_record(order) for order in state.purchase_orders]}


@router.post('/purchase-orders/{order_id}/receive')
def receive_purchase_order(order_id: str, state: InventoryState = Depends(get_inventory_state)) -> dict:
    order = state.receive_purchase_order(order_id)
    return {'success': True, 'purchase_order': purchase_order_to_record(order)}
