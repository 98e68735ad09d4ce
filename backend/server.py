from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import uuid
from contextlib import asynccontextmanager
from database import database

# ID Card Studio routes
from idcards import __product__, __version__
from idcards.errors import IdCardError
from idcards.routes import (
    templates_router,
    forms_router,
    cards_router,
    companies_router,
    files_router,
)

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {__product__} API")
    await database.connect()

    yield

    # Shutdown
    logger.info(f"Shutting down {__product__} API")
    await database.close()

# Create FastAPI app
app = FastAPI(
    title=f"{__product__} API",
    description="ID card templates, public registration forms and card issuance",
    version=__version__,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(templates_router)
app.include_router(forms_router)
app.include_router(cards_router)
app.include_router(companies_router)
app.include_router(files_router)  # Public file serving

# Root endpoint
@app.get("/api")
async def root():
    return {
        "service": __product__,
        "version": __version__,
        "status": "operational"
    }

# Health check
@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "environment": os.getenv("ENVIRONMENT", "development")
    }


# Version/build stamp for deployment verification (commit SHA set by CI/CD, e.g. GIT_COMMIT_SHA)
@app.get("/api/version")
async def version_info():
    return {
        "commit_sha": os.getenv("GIT_COMMIT_SHA", os.getenv("BUILD_SHA", "unknown")),
        "environment": os.getenv("ENVIRONMENT", "development"),
    }


# Classified domain errors: {"detail", "code"} with the kind's HTTP status
@app.exception_handler(IdCardError)
async def idcard_exception_handler(request: Request, exc: IdCardError):
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


def jsonable_errors(errors):
    # ctx may carry the raw exception object
    return [{k: v for k, v in e.items() if k != "ctx"} for e in errors]


# Validation error handler: log request_id + full errors (loc path) for submission debugging
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = str(uuid.uuid4())
    errors = exc.errors()
    path = getattr(request, "url", None) and getattr(request.url, "path", "") or ""
    if "/forms" in path:
        logger.warning(
            "Form request validation failed request_id=%s path=%s errors=%s",
            request_id,
            path,
            [(e.get("loc"), e.get("msg"), e.get("type")) for e in errors],
        )
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(errors), "request_id": request_id},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "server:app",
        host="0.0.0.0",
        port=8001,
        reload=os.getenv("ENVIRONMENT") == "development"
    )
