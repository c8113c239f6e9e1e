import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from hkids.core.config import settings
from hkids.core.database import create_tables
from hkids.core.exceptions import ReadingCoreError, ValidationError
from hkids.api.v1.router import api_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting up HKids API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Create database tables
    await create_tables()
    logger.info("Database tables created successfully")

    logger.info("HKids API startup complete")

    yield

    # Shutdown
    logger.info("Shutting down HKids API...")


# Create FastAPI application
app = FastAPI(
    title="HKids API",
    description="Reading platform API: child library, reading sessions and parental policies",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=False,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)


@app.exception_handler(ReadingCoreError)
async def reading_core_error_handler(request: Request, exc: ReadingCoreError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    error = ValidationError(details={"errors": exc.errors()})
    return JSONResponse(status_code=error.status_code, content=jsonable_encoder(error.to_dict()))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "code": "INTERNAL_ERROR", "details": None}
    )


# Configure CORS (always enabled)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list({*settings.CORS_ORIGINS, settings.FRONTEND_URL}),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


# Health check endpoint
@app.get("/")
async def root():
    return {
        "message": "HKids API",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "message": "HKids API is running successfully"
    }
