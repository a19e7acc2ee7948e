from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from smartstock.services.inventory_types import PurchaseOrderStatus


class Base(DeclarativeBase):
    pass


class ProductRow(Base):
    __tablename__ = 'products'

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    barcode: Mapped[str] = mapped_column(Text, nullable=False, default='')
    sku: Mapped[str] = mapped_column(Text, nullable=False, default='')
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    category: Mapped[str] = mapped_column(Text, nullable=False, default='Uncategorized')
    supplier: Mapped[str] = mapped_column(Text, nullable=False, default='Unknown Supplier')
    unit: Mapped[str] = mapped_column(Text, nullable=False, default='each')
    price: Mapped[Decimal] = mapped_column(Numeric, nullable=False, default=Decimal('0'))
    cost: Mapped[Decimal] = mapped_column(Numeric, nullable=False, default=Decimal('0'))
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[str | None] = mapped_column(Text)
    # ISO-8601 text keeps the offset on backends without timezone support.
    last_ordered: Mapped[str | None] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class PurchaseOrderRow(Base):
    __tablename__ = 'purchase_orders'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    supplier_id: Mapped[str] = mapped_column(Text, nullable=False)
    supplier_name: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[PurchaseOrderStatus] = mapped_column(
        SQLEnum(PurchaseOrderStatus, name='purchase_order_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PurchaseOrderStatus.SUBMITTED,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrderItemRow(Base):
    __tablename__ = 'order_items'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    purchase_order_id: Mapped[str] = mapped_column(
        Text, ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(Text, nullable=False)
    barcode: Mapped[str] = mapped_column(Text, nullable=False, default='')
    name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    supplier: Mapped[str] = mapped_column(Text, nullable=False)


class ReorderLogRow(Base):
    __tablename__ = 'reorder_log'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(Text, nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    supplier: Mapped[str] = mapped_column(Text, nullable=False)
    order_date: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StocktakeRow(Base):
    __tablename__ = 'stocktakes'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default='completed')
    notes: Mapped[str | None] = mapped_column(Text)


class StocktakeItemRow(Base):
    __tablename__ = 'stocktake_items'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    stocktake_id: Mapped[str] = mapped_column(
        Text, ForeignKey('stocktakes.id', ondelete='CASCADE'), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(Text, nullable=False)
    barcode: Mapped[str] = mapped_column(Text, nullable=False, default='')
    name: Mapped[str] = mapped_column(Text, nullable=False)
    expected_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    discrepancy: Mapped[int] = mapped_column(Integer, nullable=False)
