from __future__ import annotations

import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from smartstock import sync_catalog
from smartstock.services.local_state_store import LocalStateStore


class SyncCatalogCliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        store = LocalStateStore(self.root / 'state.json')
        patches = [
            patch('smartstock.sync_catalog.get_local_state_store', return_value=store),
            patch('smartstock.services.gateway_factory.get_local_state_store', return_value=store),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_local_backend_check_passes(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            code = sync_catalog.main(['--backend', 'local', '--check'])

        self.assertEqual(code, 0)
        self.assertIn('local backend configuration OK', out.getvalue())

    def test_import_then_export_csv(self) -> None:
        source = self.root / 'in.csv'
        target = self.root / 'out.csv'
        source.write_text('name,cost,current_stock,minstock\nWidget,2,1,5\nGadget,3,9,1\n', encoding='utf-8')

        out = io.StringIO()
        with redirect_stdout(out):
            code = sync_catalog.main(['--backend', 'local', '--import-csv', str(source), '--export-csv', str(target)])

        self.assertEqual(code, 0)
        self.assertIn('products=2, low_stock=1', out.getvalue())
        self.assertEqual(len(target.read_text(encoding='utf-8').strip().splitlines()), 3)

    def test_invalid_csv_reports_failure(self) -> None:
        source = self.root / 'in.csv'
        source.write_text('sku,cost\nA,1\n', encoding='utf-8')

        err = io.StringIO()
        with redirect_stdout(io.StringIO()), redirect_stderr(err):
            code = sync_catalog.main(['--backend', 'local', '--import-csv', str(source)])

        self.assertEqual(code, 1)
        self.assertIn('Catalog sync failed', err.getvalue())


if __name__ == '__main__':
    unittest.main()
