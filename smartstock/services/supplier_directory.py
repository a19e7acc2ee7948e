from __future__ import annotations

from smartstock.services.inventory_types import Supplier

DEFAULT_SUPPLIERS: tuple[Supplier, ...] = (
    Supplier(
        id='1',
        name='Acme Supplies',
        email='orders@acmesupplies.com',
        phone='555-123-4567',
        address='123 Main St, Business District, City',
        contact_person='John Smith',
    ),
    Supplier(
        id='2',
        name='Tech Distributors',
        email='sales@techdist.com',
        phone='555-987-6543',
        address='456 Tech Blvd, Innovation Park, City',
        contact_person='Sarah Johnson',
    ),
    Supplier(
        id='3',
        name='Parts Unlimited',
        email='orders@partsunlimited.com',
        phone='555-456-7890',
        address='789 Component Ave, Industrial Zone, City',
        contact_person='Mike Williams',
    ),
    Supplier(
        id='4',
        name='Workshop Solutions',
        email='support@workshopsolutions.com',
        phone='555-234-5678',
        address='321 Tool St, Manufacturing District, City',
        contact_person='Lisa Brown',
    ),
    Supplier(
        id='5',
        name='Industrial Supply Co',
        email='orders@industrialsupply.com',
        phone='555-876-5432',
        address='654 Material Rd, Warehouse District, City',
        contact_person='David Miller',
    ),
)


def find_supplier(suppliers: list[Supplier] | tuple[Supplier, ...], name: str) -> Supplier | None:
    for supplier in suppliers:
        if supplier.name == name:
            return supplier
    return None
