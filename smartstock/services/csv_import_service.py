from __future__ import annotations

import csv
import hashlib
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from io import StringIO

from smartstock.config import settings
from smartstock.errors import MalformedData, ValidationError
from smartstock.services.inventory_types import Product, format_timestamp, parse_timestamp

logger = logging.getLogger('smartstock.csv')

NAME_HEADERS = ('name', 'Name', 'product_name', 'Item_Description', 'item_description')

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    'id': ('itemcode', 'id', 'product_id'),
    'barcode': ('barcode', 'Barcode'),
    'sku': ('sku', 'SKU'),
    'description': ('description', 'Description'),
    'category': ('Category', 'category'),
    'supplier': ('Supplier', 'supplier'),
    'unit': ('Pack_Size', 'unit', 'Unit'),
    'current_stock': ('current_stock', 'currentStock', 'stock'),
    'min_stock': ('minstock', 'min_stock', 'minStock'),
    'cost': ('cost', 'Cost'),
    'price': ('price', 'Price'),
    'image_url': ('image_url', 'imageUrl'),
    'last_ordered': ('last_ordered', 'lastOrdered'),
}

EXPORT_COLUMNS = (
    'id',
    'barcode',
    'sku',
    'name',
    'description',
    'category',
    'supplier',
    'unit',
    'price',
    'cost',
    'current_stock',
    'min_stock',
    'image_url',
    'last_ordered',
)


def _pick(row: dict[str, str], headers: tuple[str, ...]) -> str:
    for header in headers:
        value = row.get(header)
        if value is not None and value.strip():
            return value.strip()
    return ''


def _int_or_zero(raw: str) -> int:
    try:
        return max(int(Decimal(raw)), 0)
    except (InvalidOperation, ValueError, OverflowError):
        return 0


def _decimal_or_zero(raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except (InvalidOperation, ValueError):
        return Decimal('0')
    if not value.is_finite() or value < 0:
        return Decimal('0')
    return value


def synthesize_barcode(sku: str, name: str) -> str:
    digest = hashlib.sha1(f'{sku}|{name}'.encode('utf-8')).hexdigest()
    return str(int(digest, 16))[:13].rjust(13, '0')


def parse_products_csv(content: str, *, markup: Decimal | None = None) -> list[Product]:
    reader = csv.DictReader(StringIO(content.lstrip('\ufeff')))
    headers = [header.strip() for header in (reader.fieldnames or [])]
    if not headers:
        raise ValidationError('CSV file is empty or invalid')
    reader.fieldnames = headers
    name_headers = tuple(header for header in NAME_HEADERS if header in headers)
    if not name_headers:
        raise ValidationError(f'CSV needs a name column; accepted headers: {", ".join(NAME_HEADERS)}')

    price_markup = markup if markup is not None else Decimal(settings.csv_price_markup)
    products: list[Product] = []
    for index, row in enumerate(reader, start=1):
        if not any((value or '').strip() for value in row.values() if isinstance(value, str)):
            continue
        name = _pick(row, name_headers) or 'Unnamed Product'
        sku = _pick(row, COLUMN_ALIASES['sku']) or f'SKU{index:05d}'
        cost = _decimal_or_zero(_pick(row, COLUMN_ALIASES['cost']))
        raw_price = _pick(row, COLUMN_ALIASES['price'])
        price = (
            _decimal_or_zero(raw_price)
            if raw_price
            else (cost * price_markup).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        )
        try:
            last_ordered = parse_timestamp(_pick(row, COLUMN_ALIASES['last_ordered']))
        except MalformedData as exc:
            logger.warning('Ignoring last_ordered on CSV row %d: %s', index, exc)
            last_ordered = None

        products.append(
            Product(
                id=_pick(row, COLUMN_ALIASES['id']) or f'PROD{index}',
                barcode=_pick(row, COLUMN_ALIASES['barcode']) or synthesize_barcode(sku, name),
                sku=sku,
                name=name,
                description=_pick(row, COLUMN_ALIASES['description']) or name,
                category=_pick(row, COLUMN_ALIASES['category']) or 'Uncategorized',
                supplier=_pick(row, COLUMN_ALIASES['supplier']) or 'Unknown Supplier',
                unit=_pick(row, COLUMN_ALIASES['unit']) or 'each',
                price=price,
                cost=cost,
                current_stock=_int_or_zero(_pick(row, COLUMN_ALIASES['current_stock'])),
                min_stock=_int_or_zero(_pick(row, COLUMN_ALIASES['min_stock'])),
                image_url=_pick(row, COLUMN_ALIASES['image_url']) or None,
                last_ordered=last_ordered,
            )
        )
    logger.info('Parsed %d products from CSV', len(products))
    return products


def export_products_csv(products: list[Product]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)
    for product in products:
        writer.writerow(
            [
                product.id,
                product.barcode,
                product.sku,
                product.name,
                product.description,
                product.category,
                product.supplier,
                product.unit,
                str(product.price),
                str(product.cost),
                product.current_stock,
                product.min_stock,
                product.image_url or '',
                format_timestamp(product.last_ordered) or '',
            ]
        )
    return output.getvalue()
