"""Main FastAPI application entry point."""

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager

from surveychat.config import get_settings
from surveychat.api.v1 import chat, dashboard, rows
from surveychat.services.recipe_cache import recipe_cache
from surveychat.services.dashboard_service import dashboard_service
from surveychat.utils.exceptions import SurveyChatException

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting SurveyChat...")

    await recipe_cache.connect()

    dashboard_service.load_dataset(settings.csv_path)

    # Recipes are generated in the background; the page polls /api/dashboard
    recipe_task = asyncio.create_task(dashboard_service.generate_recipes())

    yield

    logger.info("Shutting down SurveyChat...")
    if not recipe_task.done():
        recipe_task.cancel()

    await recipe_cache.close()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Conversational analytics over the AI job displacement survey",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(SurveyChatException)
async def surveychat_exception_handler(request, exc: SurveyChatException):
    """Handle custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "error_code": exc.error_code,
            "timestamp": exc.timestamp.isoformat()
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Handle malformed request bodies."""
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "error": f"{field}: {message}" if field else message,
            "error_code": "VALIDATION_ERROR",
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "rows": len(dashboard_service.store),
        "dashboard_ready": dashboard_service.ready,
    }


# Include API routers
app.include_router(
    rows.router,
    prefix="/api",
    tags=["Rows"]
)

app.include_router(
    dashboard.router,
    prefix="/api/dashboard",
    tags=["Dashboard"]
)

app.include_router(
    chat.router,
    prefix="/api",
    tags=["Chat"]
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "surveychat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
