from datetime import datetime

from fastapi import APIRouter, Depends

from app.api.admin_auth import AdminIdentity, require_admin
from app.dependencies import get_backend_client, get_now, get_settings
from app.domain.dashboard.service import DashboardSummary, load_dashboard
from app.infra.backend import BackendClient
from app.settings import Settings

router = APIRouter()


@router.get("/v1/admin/dashboard", response_model=DashboardSummary)
async def get_dashboard(
    client: BackendClient = Depends(get_backend_client),
    app_settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
    identity: AdminIdentity = Depends(require_admin),
) -> DashboardSummary:
    del identity
    return await load_dashboard(client, now, app_settings.tz)
