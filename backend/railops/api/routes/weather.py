"""
Weather API Routes
Current conditions and the derived speed restriction
"""
from fastapi import APIRouter, Body, Depends, HTTPException
from typing import Any, Dict, Optional
import logging

from railops.api.deps import get_state
from railops.api.envelope import ok
from railops.core.weather_engine import WeatherEngine
from railops.core.state import RailwayState

router = APIRouter(prefix="/weather", tags=["weather"])
logger = logging.getLogger(__name__)


def _weather_payload(engine: WeatherEngine) -> Dict[str, Any]:
    return {
        **engine.get_current_weather().to_dict(),
        "impactDescription": engine.get_weather_impact(),
        "speedRestriction": engine.get_speed_restriction(),
        "lastUpdate": engine.get_last_update().isoformat(),
    }


@router.get("")
async def get_weather(state: RailwayState = Depends(get_state)) -> Dict[str, Any]:
    """Current weather snapshot with its operational impact"""
    try:
        return ok(_weather_payload(state.weather))
    except Exception as e:
        logger.error(f"Error fetching weather: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch weather data")


@router.post("")
async def refresh_weather(
    payload: Optional[Dict[str, Any]] = Body(None),
    state: RailwayState = Depends(get_state),
) -> Dict[str, Any]:
    """Regenerate the weather snapshot"""
    if (payload or {}).get("action") != "refresh":
        raise HTTPException(status_code=400, detail="Invalid action")
    try:
        async with state.write_lock:
            state.weather.refresh()
        return ok(_weather_payload(state.weather), timestamp=True)
    except Exception as e:
        logger.error(f"Error refreshing weather: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to refresh weather data")
