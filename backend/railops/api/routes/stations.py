from fastapi import APIRouter, HTTPException, Query
from typing import Any, Dict, Optional

from railops.api.envelope import listing, ok
from railops.data.stations import STATIONS, get_station_by_code, get_stations_by_route

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get("")
async def get_stations(
	code: Optional[str] = Query(None, description="Station code"),
	route: Optional[str] = Query(None, description="Comma-separated station codes"),
) -> Dict[str, Any]:
	"""List corridor stations, fetch one by code, or resolve a route"""
	if code:
		station = get_station_by_code(code.upper())
		if station is None:
			raise HTTPException(status_code=404, detail="Station not found")
		return ok(station)
	if route:
		codes = [c.strip().upper() for c in route.split(",") if c.strip()]
		return listing(get_stations_by_route(codes))
	return listing(STATIONS)
