from __future__ import annotations

import logging
from dataclasses import dataclass, field

from smartstock.errors import BackendUnavailable, PartialSubmission
from smartstock.services.inventory_types import OrderItem, Product, PurchaseOrder, StocktakeItem

logger = logging.getLogger('smartstock.sync')


@dataclass(frozen=True)
class ConfigurationStatus:
    ok: bool
    missing: list[str] = field(default_factory=list)


def configuration_status(required: dict[str, object]) -> ConfigurationStatus:
    missing = [name for name, value in required.items() if not value]
    return ConfigurationStatus(ok=not missing, missing=missing)


class SyncGateway:
    """Destination for committed catalog, order and stocktake data.

    Variants are swapped by configuration, see ``gateway_factory``. Ledger
    writes are best-effort and report success as a bool; everything else
    raises ``BackendUnavailable`` on failure.
    """

    name = 'base'
    is_remote = False

    def check_configuration(self) -> ConfigurationStatus:
        raise NotImplementedError

    def initialize(self) -> None:
        return None

    def fetch_products(self) -> list[Product]:
        raise NotImplementedError

    def persist_products(self, products: list[Product]) -> None:
        raise NotImplementedError

    def persist_single_product(self, product: Product) -> None:
        raise NotImplementedError

    def record_order(self, order: PurchaseOrder, items: list[OrderItem] | tuple[OrderItem, ...]) -> bool:
        raise NotImplementedError

    def _append_stocktake_ledger(self, items: list[StocktakeItem]) -> None:
        raise NotImplementedError

    def record_stocktake(self, items: list[StocktakeItem], products: list[Product]) -> bool:
        ledger_written = True
        try:
            self._append_stocktake_ledger(items)
        except Exception as exc:
            ledger_written = False
            logger.warning('Stocktake ledger write failed on %s backend: %s', self.name, exc)

        try:
            self.persist_products(products)
        except BackendUnavailable as exc:
            if ledger_written:
                raise PartialSubmission(
                    f'Stocktake logged but product stock was not saved: {exc}',
                    ledger_written=True,
                ) from exc
            raise
        return ledger_written

    def require_configuration(self) -> None:
        status = self.check_configuration()
        if not status.ok:
            raise BackendUnavailable(
                f'{self.name} backend is not configured; missing: {", ".join(status.missing)}'
            )
