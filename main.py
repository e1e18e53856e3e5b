"""
Huddle Backend Application Entry Point.

Startup wires the three external collaborators: the Redis session store, the
Firebase app used for push, and the database.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.database import Base, engine
from app.core.middleware import SessionMiddleware
from app.push.fcm import init_firebase
from app.router.endpoints import api_router
from app.session.session_layer import init_redis
import logging
import uvicorn

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _connect_session_store() -> None:
    try:
        init_redis(host=settings.REDIS_HOST, port=settings.REDIS_PORT, db=settings.REDIS_DB)
    except Exception as e:
        logger.error(f"Session store unavailable, requests will be unauthenticated: {e}")


def _connect_push() -> None:
    try:
        init_firebase()
    except Exception as e:
        # Pushes fail per call and land in the retry queue
        logger.error(f"Firebase initialization failed: {e}")


def _check_database() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False
    logger.info("Database connection OK")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    _connect_session_store()
    _connect_push()

    # Schema is managed by Alembic; DEBUG creates missing tables for local runs
    if _check_database() and settings.DEBUG:
        from app import model  # noqa: F401
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (DEBUG mode)")

    yield

    logger.info("Shutting down...")
    engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(SessionMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": {"code": "SERVICE_ERROR", "message": "Service temporarily unavailable. Please try again."}},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
