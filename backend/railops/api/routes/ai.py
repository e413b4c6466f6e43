"""
AI Recommendation API Routes
Conflicts, recommendations and what-if analysis
"""
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import Any, Dict, List, Optional
import logging

from railops.api.deps import get_state
from railops.api.envelope import listing, ok
from railops.core.state import RailwayState
from railops.services.recommendation_engine import WhatIfScenario

router = APIRouter(prefix="/ai", tags=["ai"])
logger = logging.getLogger(__name__)


class ScenarioRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    train_id: Optional[str] = Field(None, alias="trainId")
    new_priority: Optional[int] = Field(None, alias="newPriority")
    new_route: Optional[List[str]] = Field(None, alias="newRoute")
    delay_minutes: Optional[int] = Field(None, alias="delayMinutes")


@router.get("")
async def get_ai_data(
    action: Optional[str] = Query(None, description="conflicts | weather-recommendations | priority-optimization"),
    type: Optional[str] = Query(None, description="Recommendation type"),
    conflict_type: Optional[str] = Query(None, alias="conflictType", description="Conflict type"),
    id: Optional[str] = Query(None, description="Recommendation or conflict id"),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """Current AI analysis"""
    try:
        engine = state.engine

        if id:
            item = engine.find_item(id)
            if item is None:
                raise HTTPException(status_code=404, detail="Item not found")
            return ok(item)

        if action == "conflicts":
            kind = conflict_type or type
            conflicts = engine.get_conflicts_by_type(kind) if kind else engine.get_all_conflicts()
            return listing(conflicts)

        if action == "weather-recommendations":
            return listing(engine.generate_weather_based_recommendations())

        if action == "priority-optimization":
            return listing(engine.generate_priority_optimization())

        if action is not None:
            raise HTTPException(status_code=400, detail="Invalid action")

        recommendations = engine.get_recommendations_by_type(type) if type else engine.get_all_recommendations()
        return listing(recommendations)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching AI data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch AI data")


@router.post("")
async def run_ai_action(
    payload: Optional[Dict[str, Any]] = Body(None),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """Run a what-if scenario or recompute the analysis"""
    payload = payload or {}
    action = payload.get("action")

    if action == "what-if-analysis":
        raw = payload.get("scenario")
        if not isinstance(raw, dict):
            raise HTTPException(status_code=400, detail="scenario.trainId is required")
        try:
            scenario = ScenarioRequest.model_validate(raw)
        except ValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(p) for p in first.get("loc", ()))
            raise HTTPException(status_code=400, detail=f"Invalid scenario: {where} {first.get('msg', '')}".strip())
        if not scenario.train_id:
            raise HTTPException(status_code=400, detail="scenario.trainId is required")

        try:
            # read-only against live state: no write lock needed
            result = state.engine.run_what_if_analysis(WhatIfScenario(
                train_id=scenario.train_id,
                new_priority=scenario.new_priority,
                new_route=scenario.new_route,
                delay_minutes=scenario.delay_minutes,
            ))
            return ok(result.to_dict())
        except Exception as e:
            logger.error(f"Error running what-if analysis: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to process AI request")

    if action == "refresh":
        try:
            async with state.write_lock:
                state.engine.update_analysis()
            return ok({
                "recommendations": [r.to_dict() for r in state.engine.get_all_recommendations()],
                "conflicts": [c.to_dict() for c in state.engine.get_all_conflicts()],
            }, timestamp=True)
        except Exception as e:
            logger.error(f"Error refreshing AI analysis: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to process AI request")

    raise HTTPException(status_code=400, detail="Invalid action")
