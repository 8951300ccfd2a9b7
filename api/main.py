"""FieldLedger API."""
import logging
import platform
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from config import settings
from db import SessionLocal, engine
from models import Base
from utils.audit import record_metric
from endpoints_auth import router as auth_router
from endpoints_users import router as users_router  # Staff management → /api/users
from endpoints_locations import router as locations_router
from endpoints_demands import router as demands_router  # Demands, workers, materials
from endpoints_tasks import router as tasks_router  # Task lifecycle + photos
from endpoints_storage import router as storage_router  # Signed photo URLs
from endpoints_dashboard import router as dashboard_router
from endpoints_reports import router as reports_router  # Work report JSON/CSV

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)

_started_at = time.time()

app = FastAPI(title="FieldLedger API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Latency middleware (p50/p95 metrics)
ROUTE_KIND_OVERRIDES = {
    "/api/auth/login": "auth.login.http",
    "/api/dashboard": "dashboard",
    "/api/reports/work": "reports.work",
    "/api/reports/work.csv": "reports.work.csv",
    "/health": "health",
}


@app.middleware("http")
async def latency_metrics(request: Request, call_next):
    t0 = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dt_ms = round((time.perf_counter() - t0) * 1000.0, 2)
        path = request.url.path
        kind = ROUTE_KIND_OVERRIDES.get(path, "http.other")
        status_code = getattr(response, "status_code", 0) if response else 500
        record_metric(kind, {"path": path, "method": request.method, "status": status_code},
                      latency_ms=dt_ms)


# Include routers
app.include_router(auth_router)
app.include_router(users_router, prefix="/api", tags=["users"])
app.include_router(locations_router)
app.include_router(demands_router)
app.include_router(tasks_router)
app.include_router(storage_router)
app.include_router(dashboard_router)
app.include_router(reports_router)


@app.on_event("startup")
def startup():
    """Initialize resources on application startup."""
    # Alembic owns the schema in deployments; create_all only fills in missing tables
    Base.metadata.create_all(bind=engine)
    logger.info("FieldLedger API started (db=%s, tz=%s)", settings.DB_PATH, settings.TIMEZONE)


@app.get("/health")
def health():
    """Health check endpoint with uptime tracking."""
    db_ok = True
    session = SessionLocal()
    try:
        session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("health: database check failed: %s", e)
        db_ok = False
    finally:
        session.close()

    return {
        "service": "api",
        "status": "ok" if db_ok else "degraded",
        "ok": db_ok,
        "uptime_s": round(time.time() - _started_at, 3),
        "version": app.version,
        "ts": datetime.now(timezone.utc).isoformat(),
        "python": platform.python_version(),
    }
