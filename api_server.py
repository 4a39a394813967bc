from __future__ import annotations  # FastAPI server exposing the interview practice API

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import Services
from api.routes import router
from api.schemas import HealthResp
from config.settings import settings
from errors import InvalidArgument, ServiceError


logger = logging.getLogger(__name__)


def _service_error_response(request: Request, exc: ServiceError) -> JSONResponse:  # Stable kind plus message
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"kind": exc.kind, "detail": exc.message})


def _validation_error_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in error.get("loc", ())[1:]) or "body" for error in exc.errors()})
    error = InvalidArgument(f"Invalid request fields: {', '.join(fields)}.")
    return JSONResponse(status_code=error.status_code, content={"kind": error.kind, "detail": error.message})


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the API application; services are built from settings on first use when omitted."""

    app = FastAPI(title="Interview Practice API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.services = services
    app.add_exception_handler(ServiceError, _service_error_response)
    app.add_exception_handler(RequestValidationError, _validation_error_response)

    @app.get("/api/health", response_model=HealthResp)
    def health() -> HealthResp:  # Liveness probe, no auth
        return HealthResp()

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("api_server:app", host="0.0.0.0", port=8000)
