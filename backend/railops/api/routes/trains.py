"""
Train API Routes
Fleet lookup, filtering and operator updates
"""
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
import logging

from railops.api.deps import get_state
from railops.api.envelope import listing, ok
from railops.core.models import TrainStatus
from railops.core.state import RailwayState

router = APIRouter(prefix="/trains", tags=["trains"])
logger = logging.getLogger(__name__)


class TrainUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    train_id: Optional[str] = Field(None, alias="trainId")
    status: Optional[TrainStatus] = None
    delay: Optional[int] = None
    station_code: Optional[str] = Field(None, alias="stationCode")
    priority: Optional[int] = None


@router.get("")
async def get_trains(
    id: Optional[str] = Query(None, description="Train id"),
    type: Optional[str] = Query(None, description="Train type (EMU, Express, Superfast, Freight)"),
    station: Optional[str] = Query(None, description="Station code (current, next or on route)"),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """List trains, or fetch one by id"""
    try:
        if id:
            train = state.trains.get_train_by_id(id)
            if train is None:
                raise HTTPException(status_code=404, detail="Train not found")
            return ok(train)

        if type:
            trains = state.trains.get_trains_by_type(type)
        elif station:
            trains = state.trains.get_trains_by_station(station.upper())
        else:
            trains = state.trains.get_all_trains()
        return listing(trains)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching trains: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch trains")


@router.put("")
async def update_train(
    request: TrainUpdateRequest,
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """Apply any subset of position, status, delay and priority updates"""
    if not request.train_id:
        raise HTTPException(status_code=400, detail="trainId is required")

    try:
        async with state.write_lock:
            if state.trains.get_train_by_id(request.train_id) is None:
                raise HTTPException(status_code=404, detail="Train not found")

            applied = False
            if request.station_code:
                applied = state.trains.update_train_position(request.train_id, request.station_code) or applied
            if request.status is not None or request.delay is not None:
                applied = state.trains.update_train_status(
                    request.train_id, request.status, request.delay
                ) or applied
            if request.priority is not None:
                applied = state.trains.update_train_priority(request.train_id, request.priority) or applied

        if not applied:
            raise HTTPException(status_code=404, detail="Train not found or update failed")

        logger.info(f"Train {request.train_id} updated")
        return ok(state.trains.get_train_by_id(request.train_id))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating train {request.train_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update train")


@router.post("")
async def train_action(
    payload: Optional[Dict[str, Any]] = Body(None),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """Return the train list (``refresh``) or reseed the fleet (``regenerate``, optional ``seed``)"""
    payload = payload or {}
    action = payload.get("action")
    if action == "refresh":
        return listing(state.trains.get_all_trains(), timestamp=True)
    if action != "regenerate":
        raise HTTPException(status_code=400, detail="Invalid action")

    seed = payload.get("seed", state.seed)
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise HTTPException(status_code=400, detail="seed must be an integer")

    try:
        async with state.write_lock:
            trains = state.trains.regenerate(seed)
            state.engine.update_analysis()
        return listing(trains, timestamp=True)
    except Exception as e:
        logger.error(f"Error regenerating fleet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to regenerate trains")
