import logging
from datetime import datetime, timezone
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from naagrik.core.config import settings
from naagrik.core.database import get_db, init_db
from naagrik.core.errors import NaagrikError
from naagrik.core.scheduler import start_scheduler, stop_scheduler
from naagrik.api.routes import auth, issues, uploads
from naagrik.models.user import User
from naagrik.storage.image_storage import UPLOADS_URL_PATH, image_storage

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage app lifecycle events.

    Startup: create tables if they don't exist, start the background scheduler
    Shutdown: stop the background scheduler
    """
    # In production, use migrations (Alembic) instead of create_all
    init_db()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Naagrik API",
    description="Community issue reporting platform",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - allows the web client to call the API from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error leaves the API as {"message": ...}


@app.exception_handler(NaagrikError)
async def naagrik_error_handler(request: Request, exc: NaagrikError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid value for {field}" if field else "Invalid request body"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Server error"})


# Register API route modules
# All routes are prefixed with /api for consistency
app.include_router(auth.router, prefix="/api")
app.include_router(issues.router, prefix="/api")
app.include_router(uploads.router, prefix="/api")

# Uploaded photos are served straight from disk
app.mount(UPLOADS_URL_PATH, StaticFiles(directory=str(image_storage.upload_dir)), name="uploads")


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "Naagrik API", "version": "1.0.0"}


@app.get("/api/health")
def health(db: Session = Depends(get_db)):
    """Health check endpoint - probes the database"""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.execute(text("SELECT 1"))
        db.query(User).count()
    except SQLAlchemyError:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "timestamp": timestamp,
                "database": "disconnected",
            },
        )
    return {
        "status": "healthy",
        "timestamp": timestamp,
        "database": "connected",
        "service": "naagrik-api",
    }
