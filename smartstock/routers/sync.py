from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from smartstock.dependencies import get_inventory_state
from smartstock.services.inventory_service import InventoryState
from smartstock.services.mock_catalog import mock_products

router = APIRouter(prefix='/api', tags=['sync'])
logger = logging.getLogger('smartstock.http.sync')


@router.get('/env')
def environment_check(state: InventoryState = Depends(get_inventory_state)) -> dict:
    status = state.check_configuration()
    logger.info('Environment check for %s backend: ok=%s missing=%s', state.gateway.name, status.ok, status.missing)
    return {
        'success': status.ok,
        'backend': state.gateway.name,
        'missing_variables': status.missing,
    }


@router.post('/backend/initialize')
def initialize_backend(seed: bool = False, state: InventoryState = Depends(get_inventory_state)) -> dict:
    state.gateway.require_configuration()
    state.gateway.initialize()
    seeded = 0
    if seed:
        seeded = len(state.import_products(mock_products()))
    return {'success': True, 'backend': state.gateway.name, 'seeded_products': seeded}
