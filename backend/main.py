from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from config.settings import settings
from database.db import init_db, close_db
from routes import auth, movies, users

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description="Movie catalog API with user accounts and favorite movies",
    docs_url="/docs",
    openapi_url="/openapi.json"
)

# ============ CORS Middleware ============

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info(f"CORS enabled for origins: {settings.ALLOWED_ORIGINS}")

# ============ Request Logging ============

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and processing time."""
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        elapsed = time.perf_counter() - start
        logger.error(f"{request.method} {request.url.path} -> 500 ({elapsed:.3f}s)")
        raise
    elapsed = time.perf_counter() - start
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.3f}s)")
    return response

# ============ Exception Handlers ============

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Report request validation failures as a per-field list.

    Response body:
        {"errors": [{"field": "username", "message": "..."}]}
    """
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value"),
        })
    return JSONResponse(
        status_code=422,
        content={"errors": errors},
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler: log the failure and hide its details from the client.
    """
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )

# ============ Event Handlers ============

@app.on_event("startup")
async def startup_event():
    """
    Initialize application on startup.
    - Create database tables
    - Log startup info
    """
    try:
        await init_db()
        logger.info("✅ Application started successfully")
        logger.info(f"📊 API docs available at: http://localhost:{settings.PORT}/docs")
    except Exception as e:
        logger.error(f"❌ Failed to start application: {str(e)}")
        raise

@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup on application shutdown.
    """
    await close_db()
    logger.info("❌ Application shutdown")

# ============ Health Check ============

@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.
    Returns application status.
    """
    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION
    }

# ============ Include Routers ============

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(movies.router)

logger.info("✅ All routers registered")

# ============ Root Endpoint ============

@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint.
    Returns API information.
    """
    return {
        "message": "Welcome to MoviesDB!",
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health"
    }

# ============ Run Application ============

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.HOST}:{settings.PORT}")

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info"
    )
