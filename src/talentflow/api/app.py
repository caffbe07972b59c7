from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talentflow.api.routes import router as api_router
from talentflow.config import get_settings
from talentflow.core.errors import ErrorCode, LifecycleError
from talentflow.db.init import init_database
from talentflow.logging_config import configure_logging

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNKNOWN_STATUS: 500,
    ErrorCode.TRANSITION_DENIED: 409,
    ErrorCode.CONCURRENT_MODIFICATION: 409,
    ErrorCode.DUPLICATE_APPLICATION: 409,
    ErrorCode.INVALID_FIELDS: 422,
}


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.exception_handler(LifecycleError)
    def _lifecycle_error(request: Request, exc: LifecycleError) -> JSONResponse:
        status_code = STATUS_BY_CODE.get(exc.code, 400)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(exc.to_dict(), status_code=status_code)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    return app
