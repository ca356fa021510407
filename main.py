from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse
from typing import Optional
import logging
import time
import uvicorn

from portfolio_api.core.config import Settings, settings as default_settings, get_cors_origins, configure_logging, CORS_ORIGIN_REGEX
from portfolio_api.api import access, contact, admin
from portfolio_api.db.base import Database
from portfolio_api.services.sweeper import SessionSweeper
from portfolio_api.utils.errors import ApiError
from portfolio_api.utils.relay import relay_from_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
    )

    app.state.settings = settings
    app.state.db = Database(settings.database_url)
    app.state.relay = relay_from_settings(settings)
    app.state.sweeper = SessionSweeper(
        app.state.db,
        interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
        sweep_on_start=settings.SWEEP_ON_STARTUP,
    )

    @app.on_event("startup")
    async def startup_event():
        app.state.db.create_all()
        app.state.sweeper.start()
        logger.info(f"{settings.PROJECT_NAME} started | session duration: {settings.SESSION_DURATION_DAYS} days")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.sweeper.stop()
        app.state.db.dispose()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_origin_regex=CORS_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Invalid request body",
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )

    @app.get("/")
    def read_root():
        return {"status": "ok", "message": "Portfolio Backend API is running"}

    @app.get(f"{settings.API_PREFIX}/health")
    def health():
        return {"status": "ok", "message": "Portfolio Backend API is running"}

    app.include_router(access.router, prefix=settings.API_PREFIX)
    app.include_router(contact.router, prefix=settings.API_PREFIX)
    app.include_router(admin.router, prefix=settings.API_PREFIX)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
