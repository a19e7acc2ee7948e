from __future__ import annotations

from functools import lru_cache

from smartstock.services.gateway_factory import get_local_state_store, get_sync_gateway
from smartstock.services.inventory_service import InventoryState


@lru_cache(maxsize=1)
def get_inventory_state() -> InventoryState:
    return InventoryState(gateway=get_sync_gateway(), store=get_local_state_store())
