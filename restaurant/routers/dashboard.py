from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.auth import get_caller
from restaurant.database import get_db
from restaurant.schemas.dashboard import DashboardResponse
from restaurant.services import dashboard_service
from restaurant.services.access_policy import Caller

router = APIRouter()


@router.get("", response_model=DashboardResponse, response_model_exclude_none=True)
async def dashboard(
    start: datetime | None = None,
    end: datetime | None = None,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    return await dashboard_service.compose(db, caller, start=start, end=end)
