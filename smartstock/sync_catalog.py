from __future__ import annotations

import argparse
import sys
from pathlib import Path

from smartstock.config import settings
from smartstock.errors import BackendUnavailable
from smartstock.logging_config import configure_logging
from smartstock.services.csv_import_service import export_products_csv, parse_products_csv
from smartstock.services.gateway_factory import SYNC_BACKENDS, build_sync_gateway, get_local_state_store
from smartstock.services.inventory_service import InventoryState
from smartstock.services.mock_catalog import mock_products


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Sync the SmartStock product catalog with its backend.')
    parser.add_argument(
        '--backend',
        choices=SYNC_BACKENDS,
        default=None,
        help='Override SYNC_BACKEND for this run.',
    )
    parser.add_argument('--check', action='store_true', help='Only report missing configuration.')
    parser.add_argument(
        '--initialize',
        action='store_true',
        help='Create sheet headers or database tables before syncing.',
    )
    parser.add_argument('--seed', action='store_true', help='Load the demo catalog after initializing.')
    parser.add_argument('--import-csv', type=Path, help='Replace the catalog with products from a CSV file.')
    parser.add_argument('--export-csv', type=Path, help='Write the fetched catalog to a CSV file.')
    return parser


def run(args: argparse.Namespace) -> int:
    backend = args.backend or settings.sync_backend
    gateway = build_sync_gateway(backend)

    status = gateway.check_configuration()
    if args.check:
        if status.ok:
            print(f'{gateway.name} backend configuration OK')
            return 0
        print(f'{gateway.name} backend is missing: {", ".join(status.missing)}')
        return 1

    state = InventoryState(gateway=gateway, store=get_local_state_store())
    if args.initialize:
        gateway.require_configuration()
        gateway.initialize()
        print(f'Initialized {gateway.name} backend')
        if args.seed:
            seeded = state.import_products(mock_products())
            print(f'Seeded {len(seeded)} demo products')

    if args.import_csv:
        products = parse_products_csv(args.import_csv.read_text(encoding='utf-8'))
        state.import_products(products)
        print(f'Imported {len(products)} products from {args.import_csv}')

    products = state.load_products()
    low_stock = state.catalog.low_stock()
    print(f'Catalog sync complete: backend={gateway.name}, products={len(products)}, low_stock={len(low_stock)}')

    if args.export_csv:
        args.export_csv.write_text(export_products_csv(products), encoding='utf-8')
        print(f'Exported {len(products)} products to {args.export_csv}')
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = _build_parser().parse_args(argv)
    try:
        return run(args)
    except (BackendUnavailable, ValueError) as exc:
        print(f'Catalog sync failed: {exc}', file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
