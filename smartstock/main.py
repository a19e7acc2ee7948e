from fastapi import FastAPI

from smartstock.errors_http import install_error_handlers
from smartstock.logging_config import configure_logging
from smartstock.routers import inventory, sync

configure_logging()

app = FastAPI(title='SmartStock Inventory Sync')

install_error_handlers(app)

app.include_router(inventory.router)
app.include_router(sync.router)


@app.get('/health')
def health() -> dict:
    return {'status': 'ok'}
