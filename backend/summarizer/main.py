"""
YouTube AI Summarizer - Main Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from summarizer.settings import get_settings
from summarizer.routes import summarize, upload, history

# Get settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")

    from summarizer.services.summarization_service import get_summarization_service
    summarization_service = get_summarization_service()
    app.state.summarization = summarization_service

    available = [name for name, backend in summarization_service.backends.items() if backend.is_configured()]
    if available:
        logger.info(f"AI models available: {', '.join(available)}")
    else:
        logger.warning("No AI model API keys configured - summarization will not work")

    # Initialize database connection
    from summarizer.services.database_service import get_database_service
    try:
        db = await get_database_service()
        if db.initialized:
            logger.info("Database connection initialized")
            app.state.db = db
            summarization_service.set_database(db)
        else:
            logger.warning("Database not configured - history will not be saved")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    # Shutdown
    logger.info("Shutting down application")

    # Close database connection
    if getattr(app.state, "db", None) is not None:
        await app.state.db.close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Streams AI summaries of YouTube videos and SRT subtitle files",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(summarize.router, prefix="/api/summarize", tags=["Summarize"])
app.include_router(upload.router, prefix="/api/upload-srt", tags=["Upload"])
app.include_router(history.router, prefix="/api/history", tags=["History"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "environment": settings.app_env,
        "version": "1.0.0"
    }


@app.get("/api")
async def api_root():
    """API root endpoint"""
    return {
        "message": f"Welcome to {settings.app_name} API",
        "docs": "/docs" if settings.debug else "Disabled in production"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "summarizer.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
