from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from boxoffice.api.batches import router as batches_router
from boxoffice.api.documents import router as documents_router
from boxoffice.api.health import router as health_router
from boxoffice.api.issuance import router as issuance_router
from boxoffice.api.login import router as login_router
from boxoffice.api.metrics_endpoint import router as metrics_router
from boxoffice.api.verify import router as verify_router
from boxoffice.core.config import SETTINGS
from boxoffice.core.logging import setup_logging
from boxoffice.db.engine import lifespan_db
from boxoffice.db.redis import lifespan_redis
from boxoffice.middleware.metrics import MetricsMiddleware
from boxoffice.middleware.request_context import RequestContextMiddleware
from boxoffice.services.document_compositor import DocumentRenderError
from boxoffice.services.issuance_service import IssuanceError

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="boxoffice",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)


@app.exception_handler(IssuanceError)
async def issuance_error_handler(_request: Request, exc: IssuanceError) -> JSONResponse:
    logger.warning("Issuance failed at step=%s: %s", exc.step, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(DocumentRenderError)
async def render_error_handler(_request: Request, exc: DocumentRenderError) -> JSONResponse:
    return JSONResponse(
        status_code=500, content={"error": f"Failed to render document: {exc}"}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Batch-Code", "X-Request-ID"],
)

# Last added runs first: RequestContext → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(login_router)
app.include_router(issuance_router)
app.include_router(batches_router)
# verify before documents: /api/tickets/verify/<code> must not be read as
# the document route for a ticket called "verify"
app.include_router(verify_router)
app.include_router(documents_router)

logger.info(
    "boxoffice started  env=%s log_level=%s port=%d store=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "postgres" if SETTINGS.database_url else "memory",
    "on" if SETTINGS.is_dev else "off",
)
