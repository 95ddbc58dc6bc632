import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockdesk.api import audit, auth, categories, products, stock_movements, users
from stockdesk.config import settings
from stockdesk.database import SessionLocal, init_db
from stockdesk.services.auth_service import ensure_default_admin

logger = logging.getLogger(__name__)
logging.getLogger("stockdesk").setLevel(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    # Create default admin if no users
    db = SessionLocal()
    try:
        ensure_default_admin(db)
    finally:
        db.close()
    yield


app = FastAPI(
    title="Stockdesk API",
    description="Inventory dashboard: products, categories, accounts and audit trails",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return JSON for unhandled exceptions so the client can parse the error."""
    logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(audit.router, prefix="/api/v1")
app.include_router(products.router, prefix="/api/v1")
app.include_router(categories.router, prefix="/api/v1")
app.include_router(stock_movements.router, prefix="/api/v1")


@app.get("/api/v1/config")
def get_config():
    """Expose the session and lockout policy the client needs."""
    return {
        "app_name": settings.APP_NAME,
        "session_timeout_seconds": settings.SESSION_TIMEOUT_MINUTES * 60,
        "max_login_attempts": settings.MAX_LOGIN_ATTEMPTS,
        "lockout_minutes": settings.LOCKOUT_MINUTES,
        "low_stock_threshold": settings.LOW_STOCK_THRESHOLD,
    }


@app.get("/health")
def health():
    return {"status": "ok"}
