from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps.database import get_booking_service, get_revenue_service
from app.api.errors import http_error, server_error
from app.core.exceptions import BookingError
from app.schemas.booking import DashboardSummary, RevenueSummary
from app.services.booking import BookingService
from app.services.revenue import RevenueService

router = APIRouter()


@router.get("/revenue", response_model=RevenueSummary)
async def get_revenue(
    at: Optional[datetime] = Query(
        None, description="Reference instant; defaults to now"
    ),
    service: RevenueService = Depends(get_revenue_service),
):
    """Revenue of the day, Monday-based week and month containing ``at``."""
    try:
        return await service.get_summary(at)
    except BookingError as e:
        raise http_error(e, "Failed to compute revenue")
    except Exception:
        raise await server_error(service.store.db, "Failed to compute revenue")


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(
    at: Optional[datetime] = Query(
        None, description="Reference instant; defaults to now"
    ),
    service: BookingService = Depends(get_booking_service),
):
    """Today's booking count and the next client."""
    try:
        return await service.get_dashboard(at)
    except BookingError as e:
        raise http_error(e, "Failed to load dashboard")
    except Exception:
        raise await server_error(service.db, "Failed to load dashboard")
