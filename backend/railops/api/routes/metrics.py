"""
Metrics API Routes
Dashboard aggregates and a synthetic historical series
"""
from fastapi import APIRouter, Body, Depends, HTTPException
from typing import Any, Dict, Optional
import logging

from railops.api.deps import get_state
from railops.api.envelope import listing, ok
from railops.core.state import RailwayState
from railops.services.metrics import compute_system_metrics, generate_historical_metrics

router = APIRouter(prefix="/metrics", tags=["metrics"])
logger = logging.getLogger(__name__)

MAX_HISTORY_HOURS = 168


@router.get("")
async def get_metrics(state: RailwayState = Depends(get_state)) -> Dict[str, Any]:
    """Aggregate system metrics"""
    try:
        return ok(compute_system_metrics(state), timestamp=True)
    except Exception as e:
        logger.error(f"Error computing metrics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch metrics")


@router.post("")
async def historical_metrics(
    payload: Optional[Dict[str, Any]] = Body(None),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """Synthetic hourly history (``action=historical``, ``timeRange`` in hours)"""
    payload = payload or {}
    if payload.get("action") != "historical":
        raise HTTPException(status_code=400, detail="Invalid action")

    try:
        hours = int(payload.get("timeRange", 24))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="timeRange must be a number of hours")
    if not 1 <= hours <= MAX_HISTORY_HOURS:
        raise HTTPException(status_code=400, detail=f"timeRange must be between 1 and {MAX_HISTORY_HOURS} hours")

    try:
        return listing(generate_historical_metrics(hours, seed=state.seed), timeRange=hours)
    except Exception as e:
        logger.error(f"Error generating historical metrics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch historical metrics")
