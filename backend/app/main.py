"""
AI Visibility Tracker - Analysis Pipeline
Main FastAPI Application
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Log to stdout at the configured level"""
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )
    # Quiet down chatty loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    from app.adapters.llm import get_adapter
    from app.services import AnalysisRunner
    from app.utils import init_db, close_db

    settings = get_settings()
    await init_db()

    adapter = get_adapter("google", api_key=settings.GOOGLE_API_KEY)
    if not adapter.is_configured:
        logger.warning("GOOGLE_API_KEY is not set; analysis runs will be rejected")
    runner = AnalysisRunner(adapter)
    # Nothing executes runs left in flight by a previous process
    await runner.recover_interrupted_runs()
    app.state.analysis_runner = runner

    yield

    await app.state.analysis_runner.shutdown()
    await close_db()


def create_app() -> FastAPI:
    """Factory function to create FastAPI app"""
    settings = get_settings()
    configure_logging()

    application = FastAPI(
        title="AI Visibility Tracker API",
        description="""
        Measure how an AI assistant with live web search talks about your brand.

        ## Features
        - Runs a project's prompts against Gemini with Google Search grounding
        - Brand mention detection with position, sentiment and recommendations
        - Citation extraction from grounding metadata
        - Per-brand visibility, share of voice and citation metrics
        - Live run progress over Server-Sent Events
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.is_development else None,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handler
    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors"""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        settings = get_settings()
        if settings.DEBUG:
            return JSONResponse(
                status_code=500,
                content={
                    "detail": str(exc),
                    "type": type(exc).__name__,
                },
            )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Import and include API routes
    from app.api.routes import api_router
    application.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")

    # Health check
    @application.get("/health")
    async def health_check():
        """Health check endpoint"""
        settings = get_settings()
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.APP_ENV,
        }

    return application


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.WORKERS,
    )
