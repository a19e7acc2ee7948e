from __future__ import annotations

from decimal import Decimal

from smartstock.services.inventory_types import Product


def mock_products() -> list[Product]:
    rows = [
        ('1', '9300000000011', 'ACM-HAM-16', 'Claw Hammer 16oz', 'Tools', 'Acme Supplies', 'each', '24.95', '14.50', 12, 4),
        ('2', '9300000000028', 'ACM-SCR-SET', 'Screwdriver Set', 'Tools', 'Acme Supplies', 'set', '32.00', '18.75', 6, 3),
        ('3', '9300000000035', 'TD-USB-C2M', 'USB-C Cable 2m', 'Electronics', 'Tech Distributors', 'each', '14.99', '6.20', 40, 10),
        ('4', '9300000000042', 'PU-BRG-608', 'Bearing 608ZZ', 'Parts', 'Parts Unlimited', 'pack of 10', '11.50', '5.10', 3, 5),
        ('5', '9300000000059', 'WS-GLV-L', 'Work Gloves Large', 'Safety', 'Workshop Solutions', 'pair', '9.95', '4.00', 18, 6),
        ('6', '9300000000066', 'ISC-TAPE-48', 'Packing Tape 48mm', 'Consumables', 'Industrial Supply Co', 'roll', '4.50', '1.80', 0, 12),
    ]
    return [
        Product(
            id=product_id,
            barcode=barcode,
            sku=sku,
            name=name,
            description=name,
            category=category,
            supplier=supplier,
            unit=unit,
            price=Decimal(price),
            cost=Decimal(cost),
            current_stock=current_stock,
            min_stock=min_stock,
        )
        for product_id, barcode, sku, name, category, supplier, unit, price, cost, current_stock, min_stock in rows
    ]
