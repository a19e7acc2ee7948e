from __future__ import annotations

import json
import logging
from collections.abc import Callable
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from smartstock.config import settings
from smartstock.errors import BackendUnavailable, MalformedData
from smartstock.services.inventory_types import (
    OrderItem,
    Product,
    PurchaseOrder,
    StocktakeItem,
    format_timestamp,
    product_from_record,
    product_to_record,
    utc_now,
)
from smartstock.services.sync_gateway import ConfigurationStatus, SyncGateway, configuration_status

logger = logging.getLogger('smartstock.sync.sheets')

SHEETS_SCOPE = 'https://www.googleapis.com/auth/spreadsheets'
TOKEN_URI = 'https://oauth2.googleapis.com/token'

PRODUCTS_SHEET = 'Products'
REORDER_LOG_SHEET = 'Reorder Log'
STOCKTAKE_LOG_SHEET = 'Stocktake Log'

PRODUCT_COLUMNS = (
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
REORDER_LOG_COLUMNS = ('timestamp', 'supplier', 'product_id', 'barcode', 'name', 'quantity')
STOCKTAKE_LOG_COLUMNS = (
    'timestamp',
    'product_id',
    'barcode',
    'name',
    'expected_quantity',
    'actual_quantity',
    'discrepancy',
)

PRODUCTS_RANGE = f'{PRODUCTS_SHEET}!A:N'
REORDER_LOG_RANGE = f"'{REORDER_LOG_SHEET}'!A:F"
STOCKTAKE_LOG_RANGE = f"'{STOCKTAKE_LOG_SHEET}'!A:G"

TokenProvider = Callable[[], str]


def service_account_token() -> str:
    info = {
        'type': 'service_account',
        'client_email': settings.google_service_account_email,
        'private_key': settings.google_private_key_normalized,
        'token_uri': TOKEN_URI,
    }
    try:
        credentials = service_account.Credentials.from_service_account_info(info, scopes=[SHEETS_SCOPE])
        credentials.refresh(GoogleAuthRequest())
    except (GoogleAuthError, ValueError) as exc:
        raise BackendUnavailable(f'Google service account authentication failed: {exc}') from exc
    if not credentials.token:
        raise BackendUnavailable('Google service account returned an empty access token')
    return credentials.token


class SheetsValuesClient:
    def __init__(
        self,
        *,
        sheet_id: str,
        token_provider: TokenProvider = service_account_token,
        base_url: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        self.sheet_id = sheet_id
        self.base_url = (base_url or settings.sheets_api_base_url).rstrip('/')
        self.timeout_seconds = timeout_seconds or settings.sheets_timeout_seconds
        self._token_provider = token_provider
        self._token: str | None = None

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            self._token = self._token_provider()
        return {
            'Authorization': f'Bearer {self._token}',
            'Content-Type': 'application/json',
        }

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        req = Request(
            url=f'{self.base_url}/v4/spreadsheets/{self.sheet_id}{path}',
            data=json.dumps(payload).encode('utf-8') if payload is not None else None,
            headers=self._headers(),
            method=method,
        )
        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                body = response.read().decode('utf-8')
        except HTTPError as exc:
            body = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
            if exc.code in (401, 403):
                self._token = None
            raise BackendUnavailable(f'Sheets API error {exc.code} on {path}: {body}') from exc
        except URLError as exc:
            raise BackendUnavailable(f'Sheets API network error on {path}: {exc.reason}') from exc
        except TimeoutError as exc:
            raise BackendUnavailable(f'Sheets API timed out on {path}') from exc

        if not body:
            return {}
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise BackendUnavailable(f'Sheets API returned invalid JSON on {path}') from exc

    @staticmethod
    def _range_path(range_: str) -> str:
        return f'/values/{quote(range_, safe="")}'

    def get_values(self, range_: str) -> list[list]:
        return self._request('GET', self._range_path(range_)).get('values', [])

    def clear(self, range_: str) -> None:
        self._request('POST', f'{self._range_path(range_)}:clear', {})

    def update(self, range_: str, values: list[list]) -> dict:
        return self._request(
            'PUT',
            f'{self._range_path(range_)}?valueInputOption=RAW',
            {'range': range_, 'majorDimension': 'ROWS', 'values': values},
        )

    def append(self, range_: str, values: list[list]) -> dict:
        return self._request(
            'POST',
            f'{self._range_path(range_)}:append?valueInputOption=RAW&insertDataOption=INSERT_ROWS',
            {'majorDimension': 'ROWS', 'values': values},
        )

    def sheet_titles(self) -> list[str]:
        response = self._request('GET', '?fields=sheets.properties.title')
        return [
            (sheet.get('properties') or {}).get('title', '')
            for sheet in response.get('sheets', [])
        ]

    def add_sheets(self, titles: list[str]) -> None:
        if not titles:
            return
        self._request(
            'POST',
            ':batchUpdate',
            {'requests': [{'addSheet': {'properties': {'title': title}}} for title in titles]},
        )


def _product_row(product: Product) -> list:
    record = product_to_record(product)
    return ['' if record[column] is None else record[column] for column in PRODUCT_COLUMNS]


def _is_header(row: list) -> bool:
    return bool(row) and str(row[0]).strip().lower() == 'id'


def _row_to_product(row: list) -> Product:
    if not row or not any(str(cell).strip() for cell in row):
        raise MalformedData('Empty row')
    padded = list(row) + [''] * (len(PRODUCT_COLUMNS) - len(row))
    return product_from_record(dict(zip(PRODUCT_COLUMNS, padded)))


class SheetsSyncGateway(SyncGateway):
    """Google Sheets backed catalog.

    ``persist_products`` clears the Products sheet and rewrites it. Sheets has
    no transaction spanning both calls, so a failure after the clear leaves the
    catalog sheet empty; this is logged at error level and raised.
    """

    name = 'sheets'
    is_remote = True

    def __init__(self, client: SheetsValuesClient | None = None) -> None:
        self._client = client

    def check_configuration(self) -> ConfigurationStatus:
        return configuration_status(
            {
                'GOOGLE_SERVICE_ACCOUNT_EMAIL': settings.google_service_account_email,
                'GOOGLE_PRIVATE_KEY': settings.google_private_key,
                'GOOGLE_SHEET_ID': settings.google_sheet_id,
            }
        )

    @property
    def client(self) -> SheetsValuesClient:
        if self._client is None:
            self.require_configuration()
            self._client = SheetsValuesClient(sheet_id=settings.google_sheet_id or '')
        return self._client

    def initialize(self) -> None:
        client = self.client
        existing = set(client.sheet_titles())
        missing = [
            title
            for title in (PRODUCTS_SHEET, REORDER_LOG_SHEET, STOCKTAKE_LOG_SHEET)
            if title not in existing
        ]
        if missing:
            logger.info('Creating sheets: %s', ', '.join(missing))
            client.add_sheets(missing)
        client.update(f'{PRODUCTS_SHEET}!A1:N1', [list(PRODUCT_COLUMNS)])
        client.update(f"'{REORDER_LOG_SHEET}'!A1:F1", [list(REORDER_LOG_COLUMNS)])
        client.update(f"'{STOCKTAKE_LOG_SHEET}'!A1:G1", [list(STOCKTAKE_LOG_COLUMNS)])

    def fetch_products(self) -> list[Product]:
        rows = self.client.get_values(PRODUCTS_RANGE)
        if rows and _is_header(rows[0]):
            rows = rows[1:]
            start = 2
        else:
            start = 1

        products: list[Product] = []
        for offset, row in enumerate(rows):
            try:
                products.append(_row_to_product(row))
            except MalformedData as exc:
                logger.warning('Skipping products sheet row %d: %s', start + offset, exc)
        logger.info('Fetched %d products from sheet', len(products))
        return products

    def persist_products(self, products: list[Product]) -> None:
        client = self.client
        values = [list(PRODUCT_COLUMNS)] + [_product_row(product) for product in products]
        client.clear(PRODUCTS_RANGE)
        try:
            client.update(f'{PRODUCTS_SHEET}!A1', values)
        except BackendUnavailable:
            logger.error(
                'Products sheet was cleared but rewriting %d products failed; the sheet is now empty',
                len(products),
            )
            raise
        logger.info('Rewrote %d products to sheet', len(products))

    def persist_single_product(self, product: Product) -> None:
        client = self.client
        rows = client.get_values(PRODUCTS_RANGE)
        if not rows:
            client.update(f'{PRODUCTS_SHEET}!A1', [list(PRODUCT_COLUMNS), _product_row(product)])
            return

        for index, row in enumerate(rows):
            if index == 0 and _is_header(row):
                continue
            if row and str(row[0]).strip() == product.id:
                row_number = index + 1
                client.update(f'{PRODUCTS_SHEET}!A{row_number}:N{row_number}', [_product_row(product)])
                logger.info('Updated product %s in sheet row %d', product.id, row_number)
                return

        client.append(PRODUCTS_RANGE, [_product_row(product)])
        logger.info('Appended product %s to sheet', product.id)

    def record_order(self, order: PurchaseOrder, items: list[OrderItem] | tuple[OrderItem, ...]) -> bool:
        timestamp = format_timestamp(utc_now())
        values = [
            [timestamp, item.supplier, item.product_id, item.barcode, item.name, item.quantity]
            for item in items
        ]
        try:
            response = self.client.append(REORDER_LOG_RANGE, values)
        except BackendUnavailable as exc:
            logger.warning('Reorder log write failed for order %s: %s', order.id, exc)
            return False
        updates = response.get('updates') or {}
        logger.info(
            'Logged order %s to reorder sheet: range=%s rows=%s',
            order.id,
            updates.get('updatedRange'),
            updates.get('updatedRows'),
        )
        return True

    def _append_stocktake_ledger(self, items: list[StocktakeItem]) -> None:
        timestamp = format_timestamp(utc_now())
        self.client.append(
            STOCKTAKE_LOG_RANGE,
            [
                [
                    timestamp,
                    item.product_id,
                    item.barcode,
                    item.name,
                    item.expected_quantity,
                    item.actual_quantity,
                    item.discrepancy,
                ]
                for item in items
            ],
        )
