from __future__ import annotations

from functools import lru_cache

from smartstock.config import settings
from smartstock.services.database_sync_gateway import DatabaseSyncGateway
from smartstock.services.local_state_store import LocalStateStore
from smartstock.services.local_sync_gateway import LocalSyncGateway
from smartstock.services.sheets_sync_gateway import SheetsSyncGateway
from smartstock.services.sync_gateway import SyncGateway

SYNC_BACKENDS = ('local', 'sheets', 'database')


@lru_cache(maxsize=1)
def get_local_state_store() -> LocalStateStore:
    return LocalStateStore(settings.local_state_path)


def build_sync_gateway(backend: str, *, store: LocalStateStore | None = None) -> SyncGateway:
    backend = backend.strip().lower()
    if backend == 'sheets':
        return SheetsSyncGateway()
    if backend == 'database':
        return DatabaseSyncGateway()
    if backend != 'local':
        raise ValueError(f'Unknown SYNC_BACKEND {backend!r}; expected one of {", ".join(SYNC_BACKENDS)}')
    return LocalSyncGateway(store or get_local_state_store())


@lru_cache(maxsize=1)
def get_sync_gateway() -> SyncGateway:
    return build_sync_gateway(settings.sync_backend)
