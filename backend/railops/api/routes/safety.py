"""
Safety API Routes
Alert listing, manual checks, alert creation and resolution
"""
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import Any, Dict, List, Optional
import logging

from railops.api.deps import get_state
from railops.api.envelope import listing, ok
from railops.core.models import AlertSeverity, AlertType
from railops.core.state import RailwayState

router = APIRouter(prefix="/safety", tags=["safety"])
logger = logging.getLogger(__name__)


class AlertCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: AlertType
    severity: AlertSeverity
    title: str
    description: str = ""
    affected_trains: List[str] = Field(default_factory=list, alias="affectedTrains")
    affected_stations: List[str] = Field(default_factory=list, alias="affectedStations")
    resolved: bool = False


class ResolveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    alert_id: Optional[str] = Field(None, alias="alertId")
    action: str = "resolve"


@router.get("")
async def get_alerts(
    id: Optional[str] = Query(None, description="Alert id"),
    type: Optional[str] = Query(None, description="Alert type"),
    severity: Optional[str] = Query(None, description="Alert severity"),
    run_check: bool = Query(False, alias="runCheck", description="Run a safety pass first"),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """List active alerts, or fetch one by id"""
    try:
        if id:
            alert = state.safety.get_alert_by_id(id)
            if alert is None:
                raise HTTPException(status_code=404, detail="Alert not found")
            return ok(alert)

        if run_check:
            async with state.write_lock:
                alerts = state.safety.run_safety_check()
        elif type:
            alerts = state.safety.get_alerts_by_type(type)
        elif severity:
            alerts = state.safety.get_alerts_by_severity(severity)
        else:
            alerts = state.safety.get_all_alerts()
        return listing(alerts)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching safety alerts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch safety alerts")


@router.post("")
async def create_or_check(
    payload: Optional[Dict[str, Any]] = Body(None),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """
    Either run a safety pass (``action=run-check``) or create an alert.

    The alert may be sent under ``alert`` with ``action=create`` or as raw
    alert fields at the top level.
    """
    payload = payload or {}
    action = payload.get("action")

    if action == "run-check":
        try:
            async with state.write_lock:
                alerts = state.safety.run_safety_check()
            return listing(alerts, timestamp=True)
        except Exception as e:
            logger.error(f"Error running safety check: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to run safety check")

    if action not in (None, "create"):
        raise HTTPException(status_code=400, detail="Invalid action")

    fields = payload.get("alert") if isinstance(payload.get("alert"), dict) else {
        k: v for k, v in payload.items() if k != "action"
    }
    try:
        request = AlertCreate.model_validate(fields)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise HTTPException(status_code=400, detail=f"Invalid alert: {where} {first.get('msg', '')}".strip())

    try:
        async with state.write_lock:
            alert = state.safety.create_alert(request.model_dump())
        return ok(alert)
    except Exception as e:
        logger.error(f"Error creating alert: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create alert")


@router.patch("")
async def resolve_alert(
    request: ResolveRequest,
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """Resolve an alert"""
    if not request.alert_id:
        raise HTTPException(status_code=400, detail="alertId is required")
    if request.action != "resolve":
        raise HTTPException(status_code=400, detail="Invalid action")

    async with state.write_lock:
        resolved = state.safety.resolve_alert(request.alert_id)
    if not resolved:
        raise HTTPException(status_code=404, detail="Alert not found")
    return ok(message="Alert resolved successfully")
