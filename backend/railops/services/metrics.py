"""
Dashboard metrics derived from the live state on every request, plus a
synthetic historical series (there is no persistence behind it).
"""
import random
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from railops.core.models import TrainStatus, TrainType

PASSENGER_CAPACITY = {
    TrainType.EMU: 1200,
    TrainType.EXPRESS: 800,
    TrainType.SUPERFAST: 800,
}
ON_TIME_THRESHOLD_MINUTES = 5
# Roughly 60% of the fleet is expected to hold a platform at once
PLATFORM_SHARE = 0.6


def compute_system_metrics(state) -> Dict[str, Any]:
    trains = state.trains.get_all_trains()
    alerts = state.safety.get_all_alerts()
    weather = state.weather.get_current_weather()
    total = len(trains)

    active_trains = sum(1 for t in trains if t.status != TrainStatus.CANCELLED)
    on_time = sum(1 for t in trains if t.delay <= ON_TIME_THRESHOLD_MINUTES)
    passengers = sum(
        int(t.passenger_load / 100 * PASSENGER_CAPACITY[t.type])
        for t in trains if t.type in PASSENGER_CAPACITY
    )
    at_platform = sum(1 for t in trains if t.platform and t.status != TrainStatus.DEPARTED)

    conflicts = state.engine.get_all_conflicts()
    type_counts = Counter(t.type.value for t in trains)

    return {
        "activeTrains": active_trains,
        "onTimePerformance": round(on_time / total * 100) if total else 0,
        "activeAlerts": len(alerts),
        "passengersToday": passengers,
        "averageDelay": round(sum(t.delay for t in trains) / total) if total else 0,
        "platformUtilization": round(at_platform / (total * PLATFORM_SHARE) * 100) if total else 0,
        "weather": {
            "condition": weather.condition,
            "impact": weather.impact.value,
            "speedRestriction": state.weather.get_speed_restriction(),
        },
        "ai": {
            "recommendations": len(state.engine.get_all_recommendations()),
            "conflicts": len(conflicts),
            "highestConflictPriority": max((c.priority for c in conflicts), default=0),
        },
        "trainTypes": {tt.value: type_counts.get(tt.value, 0) for tt in TrainType},
    }


def generate_historical_metrics(
    hours: int,
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """One synthetic data point per hour, oldest first."""
    rng = random.Random(seed)
    now = (now or datetime.now(timezone.utc)).replace(minute=0, second=0, microsecond=0)
    series = []
    for offset in range(hours, 0, -1):
        series.append({
            "timestamp": (now - timedelta(hours=offset - 1)).isoformat(),
            "onTimePerformance": rng.randint(75, 97),
            "averageDelay": rng.randint(1, 12),
            "activeTrains": rng.randint(18, 27),
            "passengers": rng.randint(8000, 20000),
            "activeAlerts": rng.randint(0, 6),
        })
    return series
