from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from logscope.api.routes.audit import router as audit_router
from logscope.api.routes.dashboard import router as dashboard_router
from logscope.api.routes.ingest import router as ingest_router
from logscope.api.routes.logs import router as logs_router
from logscope.api.routes.report import router as report_router
from logscope.api.routes.summary import router as summary_router
from logscope.core.config import settings
from logscope.core.errors import AnalysisNotFoundError, EmptyInputError, StaleResultError
from logscope.core.executors import analysis_executor
from logscope.core.logging import configure_logging

logger = logging.getLogger("logscope")


# -------------------------
# Response helpers
# -------------------------
def ok(data: Any = None, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"success": True, "data": data, "error": None, "meta": meta or {}}


def fail(
    code: str,
    message: str,
    details: Optional[Any] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "data": None,
        "error": {"code": code, "message": message, "details": details},
        "meta": meta or {},
    }


# -------------------------
# App factory
# -------------------------
app = FastAPI(
    title="Logscope API",
    version="0.1.0",
    default_response_class=ORJSONResponse,
)


# -------------------------
# Middleware
# -------------------------
app.add_middleware(GZipMiddleware, minimum_size=1024)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request-id + timing + upload-size guard
@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start = time.perf_counter()

    # Only uploads carry a body worth guarding.
    content_length = request.headers.get("content-length")
    if request.method == "POST" and content_length is not None:
        try:
            if int(content_length) > settings.MAX_UPLOAD_BYTES:
                return ORJSONResponse(
                    status_code=413,
                    content=fail(
                        code="PAYLOAD_TOO_LARGE",
                        message=f"Upload too large. Max is {settings.MAX_UPLOAD_MB} MB.",
                        meta={"request_id": request_id},
                    ),
                )
        except ValueError:
            pass

    response = await call_next(request)

    response.headers["x-request-id"] = request_id
    response.headers["x-response-ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
    return response


# -------------------------
# Routes
# -------------------------
@app.get("/health", response_class=ORJSONResponse)
async def health():
    return ok({"status": "ok", "env": settings.ENV})


app.include_router(ingest_router, prefix="", tags=["ingest"])
app.include_router(logs_router, prefix="", tags=["logs"])
app.include_router(summary_router, prefix="", tags=["summary"])
app.include_router(dashboard_router, tags=["dashboard"])
app.include_router(audit_router, tags=["audit"])
app.include_router(report_router, tags=["report"])


# -------------------------
# Error handling
# -------------------------
@app.exception_handler(AnalysisNotFoundError)
async def analysis_not_found_handler(request: Request, exc: AnalysisNotFoundError):
    return ORJSONResponse(
        status_code=404,
        content=fail(code="ANALYSIS_NOT_FOUND", message=str(exc)),
    )


@app.exception_handler(EmptyInputError)
async def empty_input_handler(request: Request, exc: EmptyInputError):
    return ORJSONResponse(
        status_code=400,
        content=fail(code="EMPTY_INPUT", message=str(exc)),
    )


@app.exception_handler(StaleResultError)
async def stale_result_handler(request: Request, exc: StaleResultError):
    return ORJSONResponse(
        status_code=409,
        content=fail(code="STALE_RESULT", message=str(exc)),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    # Show minimal debug info only in dev
    details = None
    if settings.ENV == "dev":
        details = {"type": exc.__class__.__name__, "message": str(exc)}

    return ORJSONResponse(
        status_code=500,
        content=fail(
            code="INTERNAL_ERROR",
            message="An unexpected error occurred.",
            details=details,
        ),
    )


# -------------------------
# Startup / shutdown
# -------------------------
@app.on_event("startup")
async def on_startup():
    configure_logging(settings.LOG_LEVEL)
    logger.info(
        "Logscope ready (env=%s, years %d-%d, sampling above %d records)",
        settings.ENV, settings.MIN_YEAR, settings.MAX_YEAR, settings.SAMPLING_THRESHOLD,
    )


@app.on_event("shutdown")
async def on_shutdown():
    analysis_executor.shutdown(wait=False, cancel_futures=True)
