# procarni/main.py
import time
import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from procarni import models  # noqa: F401  (registers SQLAlchemy models)
from procarni.core.errors import ProcurementError, ValidationError
from procarni.core.logging_config import logger, setup_logging
from procarni.core.settings import settings
from procarni.db import Base, engine
from procarni.observability.metrics import router as metrics_router
from procarni.routers import delivery, documents, price_history, search

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

# ----------------------------------------------------
# App init
# ----------------------------------------------------
app = FastAPI(title=settings.APP_NAME, version="0.1.0")

setup_logging()
logger.info("startup", service=settings.APP_NAME)


# ----------------------------------------------------
# Health
# ----------------------------------------------------
@app.get("/health", include_in_schema=True)
def health() -> dict:
    return {"status": "ok"}


# ----------------------------------------------------
# Error handling
# ----------------------------------------------------
@app.exception_handler(ProcurementError)
async def procurement_error_handler(request: Request, exc: ProcurementError):
    log = logger.bind(path=str(request.url.path), code=exc.code, status_code=exc.status_code, **exc.context)
    if exc.status_code >= 500:
        log.error("request_failed", error=exc.message)
    else:
        log.info("request_rejected", error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # path/query parameters; bodies are validated in routers.payloads
    fields = [".".join(str(p) for p in e.get("loc", ())[1:]) for e in exc.errors()]
    err = ValidationError("Parámetros inválidos.", fields=fields)
    return JSONResponse(status_code=err.status_code, content=err.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.bind(path=str(request.url.path)).exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"error": "Error desconocido al procesar la solicitud.", "code": "internal_error"},
    )


# ----------------------------------------------------
# Logging middleware
# ----------------------------------------------------
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    start = time.time()

    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    client_ip = request.client.host if request.client else "unknown"

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    bound_logger = logger.bind(
        ip=client_ip,
        endpoint=str(request.url.path),
        method=request.method,
    )

    bound_logger.info("request_started")
    response = await call_next(request)
    latency_ms = round((time.time() - start) * 1000, 2)

    bound_logger.bind(status_code=response.status_code, latency_ms=latency_ms).info(
        "request_finished"
    )
    response.headers["X-Request-ID"] = request_id
    return response


# ----------------------------------------------------
# Middleware
# ----------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# outermost middleware: preflights never reach CORSMiddleware
@app.middleware("http")
async def cors_preflight(request: Request, call_next):
    # answered before routing and auth, whatever the path or origin
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    return await call_next(request)


# ----------------------------------------------------
# Routers
# ----------------------------------------------------
app.include_router(price_history.router)
app.include_router(documents.router)
app.include_router(delivery.router)
app.include_router(search.router)
app.include_router(metrics_router)  # /metrics


# ----------------------------------------------------
# Startup
# ----------------------------------------------------
@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
