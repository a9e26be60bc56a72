"""
Claim Review Workflow Service

FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from claimflow import __version__
from claimflow.api import router as claims_router
from claimflow.config import settings

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    logger.info(f"Starting {settings.app_name}")
    yield
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="""
    Review workflow for healthcare claims and emergency requests.

    ## Workflow

    - **Healthcare claims**: PENDING_MEDICAL → APPROVED_MEDICAL → PENDING_COORDINATION → APPROVED_FINAL
    - **Return for review**: coordination can send a claim back to medical (RETURNED_FOR_REVIEW),
      which re-approves it to coordination or rejects it
    - **Emergency requests**: PENDING_MEDICAL → APPROVED_BY_MEDICAL | REJECTED_BY_MEDICAL

    ## Usage

    1. Submit a claim with `POST /claims/`
    2. Medical admin approves with `POST /claims/{id}/approve`; the claim is forwarded to coordination
    3. Coordination admin approves, rejects or returns it for review
    4. Browse the queue with `GET /claims/` (search, filters, sorting, paging)
    """,
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(claims_router)


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with system info."""
    return {
        "system": settings.app_name,
        "version": __version__,
        "status": "operational",
        "docs": "/docs"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def run() -> None:
    """Serve the API with uvicorn (``claimflow`` console script)."""
    uvicorn.run("claimflow.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
