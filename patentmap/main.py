"""
PatentMap API application.

Wires settings, logging, CORS, request timing and the portfolio/health
routers onto one FastAPI app. Run with ``uvicorn patentmap.main:app`` or
``python -m patentmap.main``.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from patentmap.config import settings
from patentmap.database import close_db, init_db
from patentmap.dependencies.services import inference_client
from patentmap.routers import health, portfolios

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

# Not logged by the timing middleware
_QUIET_PATHS = frozenset({"/", "/api/health/"})


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting PatentMap API %s", API_VERSION)

    # Database is required; errors abort startup
    await init_db()

    # Inference engine is optional at startup
    if await inference_client.check_health():
        logger.info("Inference engine reachable at %s", settings.INFERENCE_BASE_URL)
    else:
        logger.warning(
            "Inference engine at %s is not reachable; constellation and heatmap "
            "requests will fail until it is up",
            settings.INFERENCE_BASE_URL,
        )

    logger.info("Listening on http://%s:%d (docs at /docs)", settings.HOST, settings.PORT)
    yield

    await close_db()
    logger.info("PatentMap API stopped")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="PatentMap API",
    description=(
        "Patent portfolio constellation and competitive landscape analytics.\n\n"
        "- `POST /api/portfolios/{id}/constellation`: molecule map with clusters and white space\n"
        "- `GET  /api/portfolios/{id}/domains`: technology-domain distribution\n"
        "- `POST /api/portfolios/{id}/compare`: comparison with a competitor\n"
        "- `GET  /api/portfolios/{id}/heatmap`: coverage density heatmap\n"
    ),
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Time each request and expose the duration as ``X-Process-Time`` (ms)."""
    started = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - started) * 1000, 2)

    if request.url.path not in _QUIET_PATHS:
        logger.info(
            "%s %s -> %d (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """JSON 500 for anything the routers did not translate."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": request.url.path,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


app.include_router(health.router, prefix="/api/health", tags=["Health"])
app.include_router(portfolios.router, prefix="/api/portfolios", tags=["Portfolios"])


@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    return {
        "name": "PatentMap API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "constellation": "/api/portfolios/{portfolio_id}/constellation",
            "domains": "/api/portfolios/{portfolio_id}/domains",
            "compare": "/api/portfolios/{portfolio_id}/compare",
            "heatmap": "/api/portfolios/{portfolio_id}/heatmap",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "patentmap.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
