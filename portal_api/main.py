from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError
from portal_api.api import auth, conversions, customers, leads
from portal_api.core.config import settings
from portal_api.core.exceptions import CredentialStoreError, RecordStoreError
from portal_api.core.redis import RedisUnavailable, init_redis, close_redis, redis_available
from portal_api.core.metrics import request_count, request_duration, db_connected, redis_connected, get_metrics_text
from portal_api.db.session import engine, init_models
import time
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        status = 500

        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            request_count.labels(
                method=request.method,
                endpoint=endpoint,
                status=status
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=endpoint
            ).observe(time.time() - start_time)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")

    logger.info("Initializing Redis connection...")
    try:
        await init_redis()
        redis_connected.set(1)
    except (RedisError, OSError) as e:
        logger.error(f"Redis connection failed: {e}")
        redis_connected.set(0)

    try:
        await init_models()
        app.state.db_ready = True
        db_connected.set(1)
        logger.info("Database connected")
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {e}")
        app.state.db_ready = False
        db_connected.set(0)

    yield

    logger.info("Application shutting down...")
    await close_redis()
    redis_connected.set(0)
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.add_middleware(MetricsMiddleware)

app.include_router(auth.router)
app.include_router(leads.router)
app.include_router(conversions.router)
app.include_router(customers.router)


@app.exception_handler(RedisUnavailable)
async def redis_unavailable(request: Request, exc: RedisUnavailable):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})


@app.exception_handler(RecordStoreError)
@app.exception_handler(CredentialStoreError)
async def store_unavailable(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check():
    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "dependencies": {
            "redis": "connected" if redis_available() else "disconnected",
            "database": "connected" if getattr(app.state, "db_ready", False) else "disconnected",
        }
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
