from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from billshare.config import Settings, get_settings
from billshare.db.repo import Database, PgBillStore, PgSessionStore
from billshare.errors import BillShareError
from billshare.handlers import bills_router, health_router, upload_router
from billshare.handlers.envelope import failure
from billshare.logging import configure_logging, get_logger
from billshare.scheduler import setup_scheduler
from billshare.services.bills import BillService, set_global_service
from billshare.services.ocr import TesseractOcr
from billshare.services.uploads import ReceiptStorage
from billshare.state import MemoryBillStore, MemorySessionStore


def build_service(settings: Settings, db: Optional[Database] = None) -> BillService:
    storage = ReceiptStorage(settings.upload_path, settings.max_file_size)
    ocr = TesseractOcr(languages=settings.ocr_languages)
    if db is not None:
        return BillService(PgSessionStore(db), PgBillStore(db), storage=storage, ocr=ocr)
    sessions = MemorySessionStore()
    return BillService(sessions, MemoryBillStore(sessions), storage=storage, ocr=ocr)


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:
    log = get_logger(__name__)

    @app.exception_handler(BillShareError)
    async def billshare_error_handler(request: Request, exc: BillShareError) -> JSONResponse:
        log.info("request.rejected", path=request.url.path, error=exc.error, message=exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(exc.error, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content=failure("Validation failed", details=details))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error = "Not found" if exc.status_code == 404 else "Request failed"
        message = "The requested resource was not found." if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=failure(error, message))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log.exception("request.failed", path=request.url.path)
        message = str(exc) if settings.is_development else "Something went wrong!"
        return JSONResponse(status_code=500, content=failure("Internal server error", message))


def create_app(service: Optional[BillService] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    log = get_logger(__name__)

    db = Database(settings.database_url) if service is None and settings.database_url else None
    service = service or build_service(settings, db)
    set_global_service(service)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler = None
        if db is not None:
            await db.connect()
        if service.storage is not None:
            scheduler = setup_scheduler(service.storage, settings)
        log.info("app.start", environment=settings.environment)
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            if db is not None:
                await db.close()
            log.info("app.stop")

    app = FastAPI(title="billshare", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    _register_error_handlers(app, settings)

    prefix = f"/api/{settings.api_version}"
    app.include_router(health_router, prefix=prefix)
    app.include_router(bills_router, prefix=prefix)
    app.include_router(upload_router, prefix=prefix)

    if service.storage is not None:
        app.mount("/uploads", StaticFiles(directory=service.storage.directory), name="uploads")
    return app


def main() -> None:
    settings = get_settings()
    uvicorn.run(create_app(settings=settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
