"""
Oakline Admin - FastAPI Application

Main entry point for the admin console backend.

Architecture:
- Request → OwnerResolver → canonical principal
- Principal → ErasureOrchestrator → StepExecutor × plan steps
- All steps attempted → identity provider removal (final, gated)
- ErasureResult → OutcomeReporter → 200 / 207 / 404 / 500
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import admin_router
from .database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Oakline Admin",
    description="""
    Oakline Admin - Principal Data Erasure

    Permanently removes every record attached to a user or admin across the
    relational store, then removes the principal's identity at the identity
    provider.

    ## Erasure
    1. **Resolve**: principal id and/or contact address → canonical owner
    2. **Plan**: fixed ordered steps, children before parents
    3. **Execute**: each step committed on its own, failures recorded
    4. **Identity**: removed last, reported on its own

    ## Key Principles
    - The store does not cascade; plan order is the integrity mechanism
    - Non-owning references (approver, reviewer, processor) are nulled, never deleted
    - A failed identity removal is a partial success, never a full one
    - Re-running an erasure is a no-op
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(admin_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Oakline Admin",
        "version": "1.0.0",
        "description": "Principal Data Erasure",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m app.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
