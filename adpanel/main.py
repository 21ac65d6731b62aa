"""
Advertising Panel API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .database import engine, Base, SessionLocal
from .errors import PanelError
from .limiter import limiter
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestContextMiddleware
from .responses import api_exception_handler, validation_exception_handler
from .routes import (
    auth_router,
    groups_router,
    media_router,
    links_router,
    payments_router,
    admin_router,
    events_router,
    health_router,
)
from .services.gateway import credential_store
from . import models  # noqa: F401  (register tables)

settings = get_settings()

# Create tables (in production, use migrations instead)
Base.metadata.create_all(bind=engine)

Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load gateway credentials on startup."""
    db = SessionLocal()
    try:
        credential_store.load(db)
    finally:
        db.close()
    api_logger.info("Advertising panel API started", environment=settings.environment, port=settings.port)

    yield  # App is running

    api_logger.info("Advertising panel API stopped")


app = FastAPI(
    title=settings.app_name,
    description="Backend API for the advertising panel",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Error envelope
app.add_exception_handler(PanelError, api_exception_handler)
app.add_exception_handler(StarletteHTTPException, api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, api_exception_handler)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,  # Cache preflight requests for 1 hour
)

# Routes
app.include_router(auth_router)
app.include_router(groups_router)
app.include_router(media_router)
app.include_router(links_router)
app.include_router(payments_router)
app.include_router(admin_router)
app.include_router(events_router)
app.include_router(health_router)

app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


@app.get("/")
def root():
    return {
        "message": settings.app_name,
        "docs": "/api/docs" if settings.debug else "Disabled in production",
    }


def run():
    """Console entry point: serve with uvicorn."""
    import uvicorn

    uvicorn.run("adpanel.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
