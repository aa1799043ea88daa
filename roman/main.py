"""
FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from roman.app.api.v1 import resume
from roman.app.core.config import settings
from roman.app.core.logging_config import get_logger, setup_logging
from roman.app.db.base import Base
from roman.app.db.session import engine
from roman.app.services.container import build_services

# Import models so they register with Base.metadata
import roman.app.models  # noqa: F401

setup_logging()
logger = get_logger("main")

# Create database tables
try:
    Base.metadata.create_all(bind=engine)
except Exception as e:
    logger.error("Database error: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = build_services(settings)
    await services.startup()
    app.state.services = services
    try:
        yield
    finally:
        await services.shutdown()


# Initialize FastAPI app
app = FastAPI(
    title="Roman API",
    description="Resume parsing and context API",
    version=settings.app_version,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(resume.router, prefix="/api/resume", tags=["resume"])


@app.get("/")
def read_root():
    """Root endpoint"""
    return {"message": "Roman API", "version": settings.app_version}


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
