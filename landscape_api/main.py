import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Import models so they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, APP_ENV, FALLBACK_MAX_ENTRIES, FALLBACK_TTL_SECONDS
from .database import Base, engine
from .domain.bookings.router import router as bookings_router
from .domain.rates.router import router as team_rates_router
from .domain.scheduling.fallback import MemoryFallback
from .domain.scheduling.router import router as calendar_router
from .errors import register_exception_handlers
from .routes.cleanup import router as cleanup_router
from .routes.square import router as square_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application starting up ({APP_ENV})...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .cache import get_redis_client

        redis_client = get_redis_client()
        if redis_client is None:
            logger.info("REDIS_URL not set - availability cache disabled")
        else:
            redis_client.ping()
            logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - availability cache will operate in fail-open mode: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Landscape Labor Booking API", version="1.0.0", lifespan=lifespan)

# Shared by every request; see dependencies.get_availability_fallback
app.state.availability_fallback = MemoryFallback(
    ttl_seconds=FALLBACK_TTL_SECONDS, max_entries=FALLBACK_MAX_ENTRIES
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


# Log CORS configuration for debugging
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(calendar_router)
app.include_router(bookings_router)
app.include_router(team_rates_router)
app.include_router(square_router)
app.include_router(cleanup_router)


@app.get("/")
def root():
    return {"message": "Landscape Labor Booking API is running"}


@app.get("/api/health")
def health():
    return {"status": "healthy"}
