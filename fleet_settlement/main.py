# fleet_settlement/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, all routers and the
settlement scheduler lifecycle.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from fleet_settlement.routers import settlements, alerts, fuel_balances, analysis, tasks, health
from fleet_settlement.database import create_tables
from fleet_settlement.config import settings
from fleet_settlement.services.scheduler import TaskScheduler
from fleet_settlement.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Fleet Settlement API",
    description="Daily and monthly settlement, anomaly alerts and fuel ledger for earthmoving machinery.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (allow the dashboard on the same LAN to call the API) ──────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard IP in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(settlements.router,   prefix="/api/v1", tags=["Settlements"])
app.include_router(alerts.router,        prefix="/api/v1", tags=["Alerts"])
app.include_router(fuel_balances.router, prefix="/api/v1", tags=["Fuel Balance"])
app.include_router(analysis.router,      prefix="/api/v1", tags=["Analysis"])
app.include_router(tasks.router,         prefix="/api/v1", tags=["Tasks"])
app.include_router(health.router,        prefix="/api/v1", tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Fleet settlement backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")

    app.state.scheduler = TaskScheduler()
    if settings.SCHEDULER_ENABLED:
        await app.state.scheduler.start()
        logger.info("⏰ Settlement scheduler started")
    else:
        logger.info("⏸  Scheduler disabled (SCHEDULER_ENABLED=false), manual triggers only")

    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Fleet settlement backend shutting down...")
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        await scheduler.shutdown()
