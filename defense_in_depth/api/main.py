"""
FastAPI application for the Defense in Depth visualizer
"""

import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from defense_in_depth import __version__
from defense_in_depth.config import configure_logging, settings
from defense_in_depth.api.dependencies import get_store

# Import route modules
from defense_in_depth.api.routers import defense_layers, layers, quiz, threats, visualization

# Setup logging
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail at startup rather than on the first request if the data is broken.
    get_store()
    yield


# Create FastAPI app
app = FastAPI(
    title="Defense in Depth API",
    description="Read-only reference data for the Defense in Depth visualization",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} {response.status_code} in {duration_ms:.0f}ms")
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


# Include routers
app.include_router(layers.router)
app.include_router(threats.router)
app.include_router(quiz.router)
app.include_router(visualization.router)
app.include_router(defense_layers.router)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": "Defense in Depth API",
        "version": __version__,
        "endpoints": [
            "/api/layers - Security layers and drill-down details",
            "/api/threats - Threat scenarios",
            "/api/quiz - Quiz questions",
            "/api/config - Visualization config",
            "/api/defense-layers - Defense rings dataset",
            "/docs - API documentation",
            "/health - Health check"
        ]
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "defense-in-depth"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
