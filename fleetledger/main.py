"""
FastAPI entrypoint for the FleetLedger settlement backend.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fleetledger.core.config import settings
from fleetledger.core.logging_config import setup_logging
from fleetledger.api.router import api_router
from fleetledger.api.exception_handlers import register_exception_handlers

setup_logging()

app = FastAPI(
    title="FleetLedger API",
    description="Subtrip lifecycle and settlement engine for logistics back-office",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": f"{settings.APP_NAME} API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
