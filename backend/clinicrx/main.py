"""
ClinicRx Backend: prescriptions and pharmacy inventory.

ARCHITECTURE:
- Engines (services/*_engine.py): pure validation and derived state
- Services: SQLAlchemy persistence boundary, audit logged
- FastAPI routes: thin JSON handlers over the services
- SQLite (or any SQLAlchemy URL) as the source of truth

Authentication is handled upstream; routes trust the X-Actor header only
for audit attribution.
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinicrx.api.routes import inventory, patients, prescriptions
from clinicrx.core.config import settings
from clinicrx.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized")
    yield


app = FastAPI(
    title="ClinicRx API",
    description="Prescriptions with derived end dates and pharmacy inventory with derived stock status.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Actor",
    ],
    max_age=600,
    expose_headers=["Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response

app.include_router(patients.router, prefix="/patients", tags=["patients"])
app.include_router(prescriptions.router, prefix="/prescriptions", tags=["prescriptions"])
app.include_router(inventory.router, prefix="/inventory", tags=["inventory"])


@app.get("/health")
def health():
    return {"status": "ok"}
