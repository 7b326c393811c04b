from fastapi import FastAPI

from sink_app.config import settings
from sink_app.database.connection import engine, Base
from sink_app.logging_config import configure_logging
from sink_app.middleware.logging import add_logging_middleware
from sink_app.api.v1 import links, stats, redirect

# Import models to ensure they're registered with Base
from sink_app.models import Link

configure_logging()

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A link shortener with access analytics, built with FastAPI",
    debug=settings.debug
)

add_logging_middleware(app)


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers (redirect last: it matches every single-segment path)
app.include_router(links.router, prefix="/api/v1")
app.include_router(stats.router, prefix="/api/v1")
app.include_router(redirect.router)
