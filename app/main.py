from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import time
import logging

from .api.v1 import appointments, auth, doctors, patients, prescriptions
from .core.config import settings
from .core.database import init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Clinic appointment booking with role-based access and half-day availability",
    openapi_url=f"{API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost", "testserver"]
    )

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and elapsed time."""
    started = time.time()
    response = await call_next(request)
    elapsed = time.time() - started
    response.headers["X-Process-Time"] = str(elapsed)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.4f}s)")
    return response

def _error_response(status_code: int, error: str, detail: str, request: Request) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": detail, "path": str(request.url.path)}
    )

@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    detail = getattr(exc, "detail", None)
    if not detail or detail == "Not Found":
        detail = "The requested resource was not found"
    return _error_response(status.HTTP_404_NOT_FOUND, "Not Found", detail, request)

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    # Reads that fail outside a service write end up here
    logger.error(f"Database error on {request.url.path}: {str(exc)}")
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Service Unavailable",
        "Database unavailable",
        request
    )

@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred",
        request
    )

for module in (auth, doctors, patients, appointments, prescriptions):
    app.include_router(module.router, prefix=API_PREFIX)

@app.on_event("startup")
async def startup_event():
    db_url = settings.get_database_url
    db_type = "PostgreSQL" if "postgresql" in db_url else "SQLite" if "sqlite" in db_url else "Unknown"
    logger.info(f"Starting {settings.APP_NAME} on {db_type}")

    try:
        init_db()
    except SQLAlchemyError:
        logger.exception("Database initialization failed. Check DATABASE_URL.")
        raise

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.VERSION
    }

@app.get("/")
async def root():
    """Service name and where to find each API area."""
    return {
        "message": f"Welcome to the {settings.APP_NAME} API",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            name: f"{API_PREFIX}/{name}"
            for name in ("auth", "doctors", "patients", "appointments", "prescriptions")
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
