from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from smartstock.errors import BackendUnavailable, NotFound, PartialSubmission, ValidationError

logger = logging.getLogger('smartstock.http')


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PartialSubmission)
    async def partial_submission(_request: Request, exc: PartialSubmission):
        logger.warning('Partial submission: %s', exc)
        return JSONResponse(
            status_code=207,
            content={'success': False, 'partial': True, 'ledger_written': exc.ledger_written, 'detail': str(exc)},
        )

    @app.exception_handler(BackendUnavailable)
    async def backend_unavailable(_request: Request, exc: BackendUnavailable):
        logger.error('Backend unavailable: %s', exc)
        return JSONResponse(status_code=503, content={'success': False, 'detail': str(exc)})

    @app.exception_handler(ValidationError)
    async def validation_error(_request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={'success': False, 'detail': str(exc)})

    @app.exception_handler(NotFound)
    async def not_found(_request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={'success': False, 'detail': str(exc)})
