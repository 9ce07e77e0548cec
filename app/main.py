from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
import logging
import os

from app.database import engine, SessionLocal
from app.database import Base
import app.models  # noqa: F401 (registers all models)
from app.config import settings
from app.services.authorization import seed_default_permissions
from app.routers import health, assets, assignments, stationary, requisitions, purchase_orders, tickets, users, export

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    # Ensure DB exists and tables are created (for dev mode without alembic)
    if settings.DATABASE_URL.startswith("sqlite:///./data/"):
        os.makedirs("data", exist_ok=True)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        added = seed_default_permissions(db)
        if added:
            logger.info("Installed %d default role permissions", added)
    finally:
        db.close()

    yield


app = FastAPI(
    title="SchoolAssets",
    description="School asset, stationary and support ticket administration",
    version="1.0.0",
    lifespan=lifespan,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.APP_ENV == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


app.add_middleware(SecurityHeadersMiddleware)

app.include_router(health.router)
app.include_router(assets.router)
app.include_router(assignments.router)
app.include_router(assignments.borrow_router)
app.include_router(assignments.sign_router)
app.include_router(stationary.router)
app.include_router(requisitions.router)
app.include_router(purchase_orders.router)
app.include_router(tickets.router)
app.include_router(users.router)
app.include_router(export.router)
