from fastapi import Request

from railops.core.state import RailwayState


def get_state(request: Request) -> RailwayState:
	"""Return the RailwayState built for this app in create_app()."""
	return request.app.state.railway
