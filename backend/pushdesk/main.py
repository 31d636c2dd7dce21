"""Main FastAPI application for device registration and admin push dispatch."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .errors import PushDeskError
from .routers import push_router, admin_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info(f"Starting PushDesk with {settings.storage_backend} device storage")

    if settings.storage_backend == "sql":
        from .database import init_db
        await init_db()

    yield

    if settings.storage_backend == "sql":
        from .database import close_db
        await close_db()
    logger.info("Shutdown complete")


async def pushdesk_error_handler(request: Request, exc: PushDeskError):
    """Normalize service errors into the ``{success: false, message}`` envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies answer 400 in the same envelope as missing fields."""
    logger.info(f"{request.method} {request.url.path} invalid body: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request body"},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="PushDesk",
        description="Device push-token registry and admin test-notification console",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PushDeskError, pushdesk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(push_router)
    app.include_router(admin_router)

    @app.get("/")
    async def root():
        return {"status": "ok", "message": "API is running"}

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "storage": settings.storage_backend,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
