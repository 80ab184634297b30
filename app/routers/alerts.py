from fastapi import APIRouter, Depends, Query
from typing import Optional
from uuid import UUID
from app.core.dependencies import get_alert_service, get_connection_factory, get_current_tenant_id, get_current_user_id
from app.models.alert import AlertResponse, AlertStatsResponse, AlertStatus, AlertType, AlertsListResponse
from app.services.alert_service import AlertService

router = APIRouter()

@router.get("", response_model=AlertsListResponse)
async def get_active_alerts_endpoint(
    limit: int = Query(default=50, ge=1, le=200),
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: AlertService = Depends(get_alert_service),
    connection_factory=Depends(get_connection_factory)
):
    """
    Active alerts, critical first, newest first within a severity
    """
    async with connection_factory() as conn:
        alerts = await service.get_active_alerts(conn, tenant_id, limit)
    return AlertsListResponse(total=len(alerts), data=alerts)

@router.get("/stats", response_model=AlertStatsResponse)
async def get_alert_stats_endpoint(
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: AlertService = Depends(get_alert_service),
    connection_factory=Depends(get_connection_factory)
):
    async with connection_factory() as conn:
        stats = await service.get_alert_stats(conn, tenant_id)
    return AlertStatsResponse(data=stats)

@router.get("/history", response_model=AlertsListResponse)
async def get_alert_history_endpoint(
    status: Optional[AlertStatus] = Query(default=None, description="Filter by status"),
    type: Optional[AlertType] = Query(default=None, description="Filter by alert type"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: AlertService = Depends(get_alert_service),
    connection_factory=Depends(get_connection_factory)
):
    async with connection_factory() as conn:
        alerts = await service.get_alert_history(conn, tenant_id, status, type, limit, offset)
    return AlertsListResponse(total=len(alerts), data=alerts)

@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert_endpoint(
    alert_id: UUID,
    tenant_id: UUID = Depends(get_current_tenant_id),
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: AlertService = Depends(get_alert_service),
    connection_factory=Depends(get_connection_factory)
):
    async with connection_factory() as conn:
        alert = await service.acknowledge_alert(conn, alert_id, user_id, tenant_id)
    return AlertResponse(data=alert)

@router.post("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert_endpoint(
    alert_id: UUID,
    tenant_id: UUID = Depends(get_current_tenant_id),
    service: AlertService = Depends(get_alert_service),
    connection_factory=Depends(get_connection_factory)
):
    async with connection_factory() as conn:
        alert = await service.resolve_alert(conn, alert_id, tenant_id)
    return AlertResponse(data=alert)
