import logging
import os
import time
from contextlib import asynccontextmanager

import redis
from fastapi import APIRouter, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import models  # noqa: F401
from .config import APP_NAME
from .database import Base, SessionLocal, engine
from .domain.admin.router import router as admin_router
from .domain.auth.router import router as auth_router
from .domain.availability.router import router as availability_router
from .domain.bookings.router import router as bookings_router
from .domain.categories.router import router as categories_router
from .domain.categories.seed import seed_categories
from .domain.provider_services.router import router as provider_services_router
from .domain.providers.router import router as providers_router
from .domain.search.router import router as search_router
from .rate_limiter import get_redis_client
from .security_headers import SecurityHeadersMiddleware

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
for noisy in ("httpx", "httpcore", "multipart"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]
UNHEADERED_PATHS = ["/health", "/docs", "/openapi.json"]

# Mounted under /api in this order
DOMAIN_ROUTERS = (
    auth_router,
    bookings_router,
    availability_router,
    provider_services_router,
    search_router,
    categories_router,
    providers_router,
    admin_router,
)


def prepare_database() -> None:
    """Create missing tables and make sure the category catalogue exists"""
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except SQLAlchemyError as e:
        # several workers racing on first boot
        if "already exists" not in str(e):
            raise
        logger.info("🗄️ Tables were created by another worker")

    db = SessionLocal()
    try:
        created = seed_categories(db)
        logger.info(f"🌱 Category catalogue ready ({created} new)")
    finally:
        db.close()


def announce_redis() -> None:
    try:
        client = get_redis_client()
    except redis.RedisError as e:
        logger.warning(f"⚠️ Redis unreachable, throttling in process memory: {e}")
        return

    if client is None:
        logger.info("ℹ️ Redis not configured: in-process throttling, catalogue cache off")
    else:
        logger.info("✅ Redis connected")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 {APP_NAME} starting")
    prepare_database()
    announce_redis()
    yield
    logger.info(f"👋 {APP_NAME} stopping")


app = FastAPI(title=f"{APP_NAME} API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    # A missing bearer header surfaces as a header validation error
    if any("authorization" in str(error.get("loc", "")).lower() for error in errors):
        logger.warning(f"🔒 {request.method} {request.url.path} without a usable Authorization header")
        return JSONResponse(status_code=401, content={"detail": "Not authenticated"})

    logger.warning(f"⚠️ Invalid payload for {request.method} {request.url.path}: {len(errors)} error(s)")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


@app.middleware("http")
async def log_failures(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"💥 {request.method} {request.url.path} failed: {e}")
        raise


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=UNHEADERED_PATHS)
else:
    logger.warning("⚠️ Security headers are off (SECURITY_HEADERS_ENABLED=false)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

api_router = APIRouter(prefix="/api")
for domain_router in DOMAIN_ROUTERS:
    api_router.include_router(domain_router)
app.include_router(api_router)


@app.get("/")
def root():
    return {"message": f"{APP_NAME} API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health():
    """Redis reachability for uptime checks; 'disabled' when the app runs without Redis"""
    try:
        client = get_redis_client()
        if client is None:
            return {"status": "disabled", "redis": {"connected": False}}

        started = time.perf_counter()
        client.ping()
        latency_ms = (time.perf_counter() - started) * 1000
        info = client.info("server")
    except redis.RedisError as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}

    return {
        "status": "healthy",
        "redis": {
            "connected": True,
            "response_time_ms": round(latency_ms, 2),
            "version": info.get("redis_version", "unknown"),
        },
    }
