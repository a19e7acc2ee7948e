from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from smartstock.config import settings
from smartstock.db import get_session_factory
from smartstock.errors import BackendUnavailable, MalformedData
from smartstock.models import (
    Base,
    OrderItemRow,
    ProductRow,
    PurchaseOrderRow,
    ReorderLogRow,
    StocktakeItemRow,
    StocktakeRow,
)
from smartstock.services.inventory_types import (
    OrderItem,
    Product,
    PurchaseOrder,
    StocktakeItem,
    format_timestamp,
    product_from_record,
    utc_now,
)
from smartstock.services.supplier_partition_service import generate_order_id
from smartstock.services.sync_gateway import ConfigurationStatus, SyncGateway, configuration_status

logger = logging.getLogger('smartstock.sync.database')

SessionFactory = Callable[[], Session]


def _row_to_product(row: ProductRow) -> Product:
    return product_from_record(
        {
            'id': row.id,
            'barcode': row.barcode,
            'sku': row.sku,
            'name': row.name,
            'description': row.description,
            'category': row.category,
            'supplier': row.supplier,
            'unit': row.unit,
            'price': row.price,
            'cost': row.cost,
            'current_stock': row.current_stock,
            'min_stock': row.min_stock,
            'image_url': row.image_url,
            'last_ordered': row.last_ordered,
        }
    )


def _apply_product(row: ProductRow, product: Product) -> None:
    row.barcode = product.barcode
    row.sku = product.sku
    row.name = product.name
    row.description = product.description
    row.category = product.category
    row.supplier = product.supplier
    row.unit = product.unit
    row.price = product.price
    row.cost = product.cost
    row.current_stock = product.current_stock
    row.min_stock = product.min_stock
    row.image_url = product.image_url
    row.last_ordered = format_timestamp(product.last_ordered)


class DatabaseSyncGateway(SyncGateway):
    """Relational backend with per-user row ownership.

    Every row carries ``user_id`` and every query filters on it, mirroring the
    row-level security policies of the hosted Postgres project.

    Products come back in the order of the last full write; products added
    one at a time go to the end.
    """

    name = 'database'
    is_remote = True

    def __init__(self, *, session_factory: SessionFactory | None = None, user_id: str | None = None) -> None:
        self._session_factory = session_factory
        self._user_id = user_id

    def check_configuration(self) -> ConfigurationStatus:
        return configuration_status(
            {
                'DATABASE_URL': self._session_factory is not None or settings.database_url,
                'DATABASE_USER_ID': self._user_id or settings.database_user_id,
            }
        )

    @property
    def user_id(self) -> str:
        self.require_configuration()
        return self._user_id or settings.database_user_id or ''

    def _session(self) -> Session:
        self.require_configuration()
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory()

    def initialize(self) -> None:
        try:
            with self._session() as db:
                Base.metadata.create_all(db.get_bind())
        except SQLAlchemyError as exc:
            raise BackendUnavailable(f'Unable to create database tables: {exc}') from exc

    def fetch_products(self) -> list[Product]:
        user_id = self.user_id
        try:
            with self._session() as db:
                rows = db.execute(
                    select(ProductRow)
                    .where(ProductRow.user_id == user_id)
                    .order_by(ProductRow.position.asc(), ProductRow.id.asc())
                ).scalars().all()
        except SQLAlchemyError as exc:
            raise BackendUnavailable(f'Failed to fetch products: {exc}') from exc

        products: list[Product] = []
        for row in rows:
            try:
                products.append(_row_to_product(row))
            except MalformedData as exc:
                logger.warning('Skipping product row %s: %s', row.id, exc)
        logger.info('Fetched %d products for user %s', len(products), user_id)
        return products

    def _upsert(
        self,
        db: Session,
        user_id: str,
        products: list[Product],
        *,
        renumber: bool,
    ) -> tuple[int, int]:
        ids = [product.id for product in products]
        existing_by_id = {
            row.id: row
            for row in db.execute(
                select(ProductRow).where(ProductRow.user_id == user_id, ProductRow.id.in_(ids))
            ).scalars().all()
        }
        next_position = (
            db.execute(select(func.max(ProductRow.position)).where(ProductRow.user_id == user_id)).scalar() or 0
        ) + 1
        created = 0
        updated = 0
        for index, product in enumerate(products):
            row = existing_by_id.get(product.id)
            if row is None:
                row = ProductRow(user_id=user_id, id=product.id, position=next_position + index)
                db.add(row)
                existing_by_id[product.id] = row
                created += 1
            else:
                updated += 1
            if renumber:
                row.position = index
            _apply_product(row, product)
        return created, updated

    def persist_products(self, products: list[Product], *, renumber: bool = True) -> None:
        if not products:
            return
        user_id = self.user_id
        with self._session() as db:
            try:
                created, updated = self._upsert(db, user_id, list(products), renumber=renumber)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise BackendUnavailable(f'Failed to save products: {exc}') from exc
        logger.info('Saved products for user %s: created=%d updated=%d', user_id, created, updated)

    def persist_single_product(self, product: Product) -> None:
        self.persist_products([product], renumber=False)

    def record_order(self, order: PurchaseOrder, items: list[OrderItem] | tuple[OrderItem, ...]) -> bool:
        try:
            user_id = self.user_id
            order_date = format_timestamp(order.date) or ''
            with self._session() as db:
                try:
                    db.add(
                        PurchaseOrderRow(
                            id=order.id,
                            user_id=user_id,
                            supplier_id=order.supplier_id,
                            supplier_name=order.supplier_name,
                            date=order_date,
                            status=order.status,
                            notes=order.notes,
                        )
                    )
                    db.flush()
                    for item in items:
                        db.add(
                            OrderItemRow(
                                purchase_order_id=order.id,
                                product_id=item.product_id,
                                barcode=item.barcode,
                                name=item.name,
                                quantity=item.quantity,
                                supplier=item.supplier,
                            )
                        )
                        db.add(
                            ReorderLogRow(
                                user_id=user_id,
                                product_id=item.product_id,
                                product_name=item.name,
                                quantity_ordered=item.quantity,
                                supplier=item.supplier,
                                order_date=order_date,
                            )
                        )
                    db.commit()
                except SQLAlchemyError:
                    db.rollback()
                    raise
        except (BackendUnavailable, SQLAlchemyError) as exc:
            logger.warning('Reorder ledger write failed for order %s: %s', order.id, exc)
            return False
        logger.info('Logged order %s with %d items', order.id, len(items))
        return True

    def _append_stocktake_ledger(self, items: list[StocktakeItem]) -> None:
        user_id = self.user_id
        stocktake_id = generate_order_id()
        with self._session() as db:
            try:
                db.add(
                    StocktakeRow(
                        id=stocktake_id,
                        user_id=user_id,
                        date=format_timestamp(utc_now()) or '',
                        status='completed',
                    )
                )
                db.flush()
                for item in items:
                    db.add(
                        StocktakeItemRow(
                            stocktake_id=stocktake_id,
                            product_id=item.product_id,
                            barcode=item.barcode,
                            name=item.name,
                            expected_quantity=item.expected_quantity,
                            actual_quantity=item.actual_quantity,
                            discrepancy=item.discrepancy,
                        )
                    )
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise BackendUnavailable(f'Failed to record stocktake: {exc}') from exc
