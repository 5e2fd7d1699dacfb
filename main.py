"""
Bond Issuance Reconciliation API - FastAPI Backend

This module initializes and configures the FastAPI application responsible for:
- Proof-of-payment analysis (PDF → page images → remote analysis function)
- Confirmation / rejection of analysed payments
- Payment proof management
- Coupon échéance views and local statement matching

Endpoints:
    - POST /api/payments/{payment_id}/proofs/analyze : Analyze a proof for one payment
    - POST /api/tranches/{tranche_id}/proofs/analyze : Analyze a proof for a tranche
    - POST /api/proof-analyses/{analysis_id}/confirm : Confirm analysed matches
    - GET  /health                                   : Health check
    - GET  /ping                                     : Connectivity test
"""

import os
import sys
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from obligations.routes import proofs, reconciliation, storage, tranches, validators
from obligations.services import analysis_client, mongodb
from obligations.services.storage import clear_bucket_cache
from obligations.utils.logger import log_message

# ---------------------------------------------------------
# Load environment variables
# ---------------------------------------------------------
load_dotenv()


# ---------------------------------------------------------
# Lifespan Event Handlers (Startup/Shutdown)
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI startup and shutdown events.
    """
    # Startup
    try:
        await mongodb.create_indexes()
        log_message("info", "MongoDB indexes initialized successfully")
    except Exception as e:
        log_message("warning", f"Failed to initialize MongoDB indexes: {e}. MongoDB features may be unavailable.")

    yield  # Application runs here

    # Shutdown
    await analysis_client.close_functions_client()
    await mongodb.close_mongodb_connection()
    clear_bucket_cache()


# ---------------------------------------------------------
# FastAPI Initialization
# ---------------------------------------------------------
log_message("info", "Initializing FastAPI application.")

app = FastAPI(
    title="Bond Issuance Reconciliation API",
    description="Payment proof analysis and coupon reconciliation for bond issuances",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------
# Core Endpoints
# ---------------------------------------------------------
@app.get("/", summary="Welcome message")
def read_root():
    """Return a welcome message to confirm API is running."""
    return {"message": "Welcome to Bond Issuance Reconciliation API"}


@app.get("/health", summary="Health check")
def health_check():
    """Health check for monitoring systems and load balancers."""
    return {"status": "healthy", "service": "Bond Issuance Reconciliation API"}


@app.get("/ping", summary="Ping test")
def ping():
    """Simple endpoint to verify server responsiveness."""
    return {"ping": "pong"}


# ---------------------------------------------------------
# Route Registration
# ---------------------------------------------------------
log_message("info", "Loading API routers.")
try:
    app.include_router(reconciliation.router)
    app.include_router(proofs.router)
    app.include_router(tranches.router)
    app.include_router(validators.router)
    app.include_router(storage.router)
except Exception as exc:
    log_message("critical", f"Failed to register router: {exc}")
    sys.exit(1)


# ---------------------------------------------------------
# CORS Configuration
# ---------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------
# Uvicorn Startup (Development Mode)
# ---------------------------------------------------------
if __name__ == "__main__":
    log_message("info", "Starting Uvicorn server.")

    try:
        host = os.getenv("HOST", "0.0.0.0")
        port = int(os.getenv("PORT", 8027))

        uvicorn.run(app, host=host, port=port)
    except Exception as exc:
        log_message("critical", f"Uvicorn server failed to start: {exc}")
        raise
