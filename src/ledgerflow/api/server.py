"""FastAPI service exposing the extraction pipeline.

Endpoints:
    GET  /                 health check and endpoint listing
    POST /api/movimientos  ledger only
    POST /api/totales      totals only
    POST /api/completo     token, ledger and totals

Handlers are plain ``def`` so FastAPI runs them on worker threads; the
Playwright sync API cannot run on the event loop thread.
"""
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse

from ledgerflow import __version__
from ledgerflow.api.service import LedgerService
from ledgerflow.config.settings import AppSettings, get_settings
from ledgerflow.utils.logger import get_logger

logger = get_logger()


def create_app(settings: Optional[AppSettings] = None, service: Optional[LedgerService] = None) -> FastAPI:
    """Build the app; ``service`` is injectable for tests."""
    settings = settings or get_settings()
    service = service or LedgerService(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Transaction history extraction service",
        version=__version__,
    )

    @app.get("/")
    def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "message":f"{settings.app_name} - server running",
            "version": __version__,
            "endpoints": {
                "health": "GET /",
                "movimientos": "POST /api/movimientos",
                "totales": "POST /api/totales",
                "completo": "POST /api/completo",
            },
        }

    @app.post("/api/movimientos")
    def movimientos(body: Optional[Dict[str, Any]] = Body(default=None)) -> JSONResponse:
        logger.info("Fetching movements...")
        status, payload = service.get_movements(body)
        return JSONResponse(status_code=status, content=payload)

    @app.post("/api/totales")
    def totales(body: Optional[Dict[str, Any]] = Body(default=None)) -> JSONResponse:
        logger.info("Computing totals...")
        status, payload = service.get_totals(body)
        return JSONResponse(status_code=status, content=payload)

    @app.post("/api/completo")
    def completo(body: Optional[Dict[str, Any]] = Body(default=None)) -> JSONResponse:
        logger.info("Fetching full report...")
        status, payload = service.get_everything(body)
        return JSONResponse(status_code=status, content=payload)

    return app
