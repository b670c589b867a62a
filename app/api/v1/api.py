from fastapi import APIRouter

from app.api.v1.endpoints import bookings, revenue

api_router = APIRouter()

# Booking management endpoints
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])

# Revenue and dashboard summaries
api_router.include_router(revenue.router, tags=["revenue"])
