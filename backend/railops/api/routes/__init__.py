from . import trains, weather, safety, stations, ai, metrics

__all__ = [
	"trains", "weather", "safety", "stations", "ai", "metrics"
]
