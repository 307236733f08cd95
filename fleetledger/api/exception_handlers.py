"""
Map domain errors to JSON responses.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fleetledger.core.exceptions import FleetLedgerError
from fleetledger.core.utils import format_error, jsonable

logger = logging.getLogger(__name__)


async def fleetledger_error_handler(request: Request, exc: FleetLedgerError) -> JSONResponse:
    """Return the error kind, message and details with the error's status code."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.message}")
    body = format_error(exc.message, jsonable(exc.details))
    body["type"] = type(exc).__name__
    return JSONResponse(status_code=exc.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error handler to the app."""
    app.add_exception_handler(FleetLedgerError, fleetledger_error_handler)
