"""
Gestionnaires d'exceptions.
- AlbumOrdersError: erreurs métier -> JSON {"detail", "code", "field"?/"kind"?}
- HTTPException: JSON {"detail"} standard
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from album_orders.errors import AlbumOrdersError, GatewayError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AlbumOrdersError)
    async def album_orders_error(request: Request, exc: AlbumOrdersError):
        if isinstance(exc, GatewayError):
            # Le détail brut du prestataire reste dans les logs
            logger.warning("%s %s gateway kind=%s detail=%s", request.method, request.url.path, exc.kind, exc.detail)
        elif exc.status_code >= 500:
            logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
