"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from fleetledger.api.routes import (
    subtrips, subtrip_events, invoices,
    driver_salaries, transporter_payments, loans
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(subtrips.router)
api_router.include_router(subtrip_events.router)
api_router.include_router(invoices.router)
api_router.include_router(driver_salaries.router)
api_router.include_router(transporter_payments.router)
api_router.include_router(loans.router)
