"""Rule-based conflict detection and recommendation engine.

This is intentionally lightweight and deterministic: trains sharing a
platform, an arrival slot or a track segment are grouped into conflict
records, and a handful of threshold rules produce textual recommendations.
Both lists are recomputed wholesale on every pass.

What-if analysis never writes to the live registry: the scenario is applied
to a copy of the train and conflicts are computed on a projected fleet.
"""
import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from railops.core.models import (
    Conflict,
    ConflictType,
    Recommendation,
    RecommendationType,
    Train,
    TrainStatus,
    TrainType,
    WeatherImpact,
    WeatherSnapshot,
    clamp_priority,
)
from railops.core.weather_engine import WeatherEngine, speed_restriction_for
from railops.services.train_registry import TrainRegistry

logger = logging.getLogger(__name__)

PEAK_HOURS = (range(8, 11), range(18, 21))
TRACK_HEADWAY_MINUTES = 5
PLATFORM_DELAY_THRESHOLD = 10
PLATFORM_DELAYED_COUNT = 3
PRIORITY_DELAY_THRESHOLD = 15
LOW_PRIORITY_CUTOFF = 5


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stamp_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _conflict_id(kind: str) -> str:
    return f"CONF-{kind}-{_stamp_ms()}-{uuid.uuid4().hex[:9]}"


def is_peak_hour(hour: int) -> bool:
    return any(hour in window for window in PEAK_HOURS)


def clock_to_minutes(value: str) -> Optional[int]:
    """Convert HH:MM to minutes since midnight; None if unparseable."""
    try:
        hh, mm = value.split(":")
        return int(hh) * 60 + int(mm)
    except (AttributeError, ValueError):
        return None


def shift_clock(value: str, minutes: int) -> str:
    total = clock_to_minutes(value)
    if total is None:
        return value
    return (datetime(2000, 1, 1) + timedelta(minutes=total + minutes)).strftime("%H:%M")


# ---------------------------------------------------------------------- conflicts
def conflict_priority(trains: List[Train]) -> int:
    max_priority = max(t.priority for t in trains)
    passenger_impact = sum(t.passenger_load for t in trains)
    return min(10, int(max_priority + passenger_impact / 100))


def _by_priority(trains: List[Train]) -> List[Train]:
    # stable: ties keep fleet order
    return sorted(trains, key=lambda t: t.priority, reverse=True)


def platform_resolution(trains: List[Train]) -> str:
    top = _by_priority(trains)[0]
    return (
        f"Assign Platform to {top.number} (Priority: {top.priority}). "
        "Redirect other trains to available platforms."
    )


def timing_resolution(trains: List[Train]) -> str:
    top = _by_priority(trains)[0]
    return f"Maintain schedule for {top.number} (highest priority). Delay others by 2-3 minutes."


def track_resolution(trains: List[Train]) -> str:
    ranked = _by_priority(trains)
    return (
        f"Give track priority to {ranked[0].number}. "
        f"Hold {ranked[1].number} at current station for {TRACK_HEADWAY_MINUTES} minutes."
    )


def _group(trains: List[Train], key) -> Dict[Tuple, List[Train]]:
    groups: Dict[Tuple, List[Train]] = {}
    for train in trains:
        k = key(train)
        if k is not None:
            groups.setdefault(k, []).append(train)
    return groups


def detect_platform_conflicts(trains: List[Train]) -> List[Conflict]:
    groups = _group(
        trains,
        lambda t: (t.current_station, t.platform)
        if t.platform and t.status != TrainStatus.DEPARTED else None,
    )
    return [
        Conflict(
            id=_conflict_id("PLATFORM"),
            type=ConflictType.PLATFORM,
            trains=[t.id for t in group],
            station=station,
            description=f"Multiple trains assigned to {station} Platform {platform}",
            suggested_resolution=platform_resolution(group),
            priority=conflict_priority(group),
            timestamp=_now_iso(),
        )
        for (station, platform), group in groups.items()
        if len(group) > 1
    ]


def detect_timing_conflicts(trains: List[Train]) -> List[Conflict]:
    groups = _group(
        trains,
        lambda t: (t.current_station, t.estimated_arrival) if t.estimated_arrival else None,
    )
    return [
        Conflict(
            id=_conflict_id("TIMING"),
            type=ConflictType.TIMING,
            trains=[t.id for t in group],
            station=station,
            description=f"Multiple trains scheduled to arrive at {arrival}",
            suggested_resolution=timing_resolution(group),
            priority=conflict_priority(group),
            timestamp=_now_iso(),
        )
        for (station, arrival), group in groups.items()
        if len(group) > 1
    ]


def detect_track_conflicts(trains: List[Train]) -> List[Conflict]:
    groups = _group(trains, lambda t: (t.current_station, t.next_station))
    conflicts: List[Conflict] = []
    for (current, nxt), group in groups.items():
        if len(group) < 2:
            continue
        # Headway is checked between the first two trains on the segment only
        first = clock_to_minutes(group[0].estimated_arrival)
        second = clock_to_minutes(group[1].estimated_arrival)
        if first is None or second is None or abs(first - second) >= TRACK_HEADWAY_MINUTES:
            continue
        conflicts.append(Conflict(
            id=_conflict_id("TRACK"),
            type=ConflictType.TRACK,
            trains=[t.id for t in group],
            station=current,
            description=f"Multiple trains on same track segment: {current}-{nxt}",
            suggested_resolution=track_resolution(group),
            priority=conflict_priority(group),
            timestamp=_now_iso(),
        ))
    return conflicts


def detect_conflicts(trains: List[Train]) -> List[Conflict]:
    return (
        detect_platform_conflicts(trains)
        + detect_timing_conflicts(trains)
        + detect_track_conflicts(trains)
    )


def conflict_key(conflict: Conflict) -> Tuple:
    """Identity of a conflict across passes (ids are regenerated every pass)."""
    return (conflict.type, conflict.station, tuple(sorted(conflict.trains)))


# ---------------------------------------------------------------------- recommendations
def peak_hour_recommendation(trains: List[Train]) -> Recommendation:
    return Recommendation(
        id=f"REC-PEAK-{_stamp_ms()}",
        type=RecommendationType.PRIORITY,
        title="Peak Hour Priority Adjustment",
        description="Increase EMU train priority during peak hours for better passenger service",
        impact="Reduce passenger waiting time by 20%",
        confidence=88,
        affected_trains=[t.id for t in trains if t.type == TrainType.EMU],
        timestamp=_now_iso(),
    )


def weather_recommendation(trains: List[Train], weather: WeatherSnapshot) -> Recommendation:
    return Recommendation(
        id=f"REC-WEATHER-{_stamp_ms()}",
        type=RecommendationType.ROUTE,
        title="Weather-Based Speed Restrictions",
        description=(
            f"Implement {speed_restriction_for(weather.impact)} km/h speed limit "
            f"due to {weather.condition.lower()}"
        ),
        impact=(
            "Ensure safety compliance, expect 10-15 minute delays"
            if weather.impact == WeatherImpact.RESTRICTED else "Monitor conditions closely"
        ),
        confidence=95,
        affected_trains=[t.id for t in trains],
        timestamp=_now_iso(),
    )


def generate_recommendations(
    trains: List[Train],
    weather: WeatherSnapshot,
    now: Optional[datetime] = None,
) -> List[Recommendation]:
    """Evaluate every rule independently; any subset may fire."""
    now = now or datetime.now()
    recommendations: List[Recommendation] = []

    if is_peak_hour(now.hour):
        recommendations.append(peak_hour_recommendation(trains))

    if weather.impact != WeatherImpact.NORMAL:
        recommendations.append(weather_recommendation(trains, weather))

    delayed = [t for t in trains if t.delay > PLATFORM_DELAY_THRESHOLD]
    if len(delayed) > PLATFORM_DELAYED_COUNT:
        recommendations.append(Recommendation(
            id=f"REC-PLATFORM-{_stamp_ms()}",
            type=RecommendationType.PLATFORM,
            title="Platform Reallocation",
            description="Optimize platform assignments to reduce delays",
            impact="Reduce average delay by 5-8 minutes",
            confidence=82,
            affected_trains=[t.id for t in delayed[:5]],
            timestamp=_now_iso(),
        ))

    low_priority_delayed = [
        t for t in trains if t.delay > PRIORITY_DELAY_THRESHOLD and t.priority < LOW_PRIORITY_CUTOFF
    ]
    if low_priority_delayed:
        recommendations.append(Recommendation(
            id=f"REC-PRIORITY-{_stamp_ms()}",
            type=RecommendationType.PRIORITY,
            title="Priority Adjustment for Delayed Trains",
            description="Increase priority for significantly delayed trains",
            impact="Improve recovery time for delayed services",
            confidence=75,
            affected_trains=[t.id for t in low_priority_delayed],
            timestamp=_now_iso(),
        ))

    return recommendations


# ---------------------------------------------------------------------- what-if
@dataclass
class WhatIfScenario:
    train_id: str
    new_priority: Optional[int] = None
    new_route: Optional[List[str]] = None
    delay_minutes: Optional[int] = None


@dataclass
class WhatIfResult:
    impact: str
    affected_trains: List[str] = field(default_factory=list)
    new_conflicts: List[Conflict] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "impact": self.impact,
            "affectedTrains": list(self.affected_trains),
            "newConflicts": [c.to_dict() for c in self.new_conflicts],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def project_train(train: Train, scenario: WhatIfScenario) -> Train:
    """Copy of ``train`` with the scenario applied; the original is untouched."""
    projected = copy.deepcopy(train)
    if scenario.new_priority is not None:
        projected.priority = clamp_priority(scenario.new_priority)
    if scenario.delay_minutes is not None:
        projected.delay += scenario.delay_minutes
        projected.estimated_arrival = shift_clock(projected.estimated_arrival, scenario.delay_minutes)
        projected.estimated_departure = shift_clock(projected.estimated_departure, scenario.delay_minutes)
    if scenario.new_route is not None:
        projected.route = list(scenario.new_route)
        if projected.current_station in projected.route:
            idx = projected.route.index(projected.current_station)
            projected.next_station = projected.route[min(idx + 1, len(projected.route) - 1)]
    return projected


def find_affected_trains(changed: Train, fleet: List[Train]) -> List[Train]:
    route = set(changed.route)
    return [
        t for t in fleet
        if t.id != changed.id and (
            t.current_station == changed.current_station
            or t.next_station == changed.current_station
            or any(code in route for code in t.route)
        )
    ]


def scenario_impact(scenario: WhatIfScenario, original: Train, projected: Train) -> str:
    lines = [f"Changes to {original.number}:"]
    if scenario.new_priority:
        lines.append(f"- Priority change: {original.priority} → {projected.priority}")
    if scenario.delay_minutes:
        lines.append(f"- Additional delay: +{scenario.delay_minutes} minutes")
    if scenario.new_route is not None:
        lines.append(f"- Route change: {len(scenario.new_route)} stations")
    lines.append(f"- Estimated passenger impact: {original.passenger_load}% capacity affected")
    return "\n".join(lines)


class RecommendationEngine:
    """Holds the latest conflict and recommendation passes."""

    def __init__(self, trains: TrainRegistry, weather: WeatherEngine):
        self.trains = trains
        self.weather = weather
        self.recommendations: List[Recommendation] = []
        self.conflicts: List[Conflict] = []
        self.last_analysis: Optional[datetime] = None
        self.update_analysis()

    def update_analysis(self, now: Optional[datetime] = None) -> None:
        fleet = self.trains.get_all_trains()
        self.recommendations = generate_recommendations(fleet, self.weather.get_current_weather(), now)
        self.conflicts = detect_conflicts(fleet)
        self.last_analysis = datetime.now(timezone.utc)
        logger.info(
            f"AI analysis: {len(self.conflicts)} conflict(s), {len(self.recommendations)} recommendation(s)"
        )

    def get_all_recommendations(self) -> List[Recommendation]:
        return list(self.recommendations)

    def get_recommendations_by_type(self, rec_type: RecommendationType | str) -> List[Recommendation]:
        return [r for r in self.recommendations if r.type == rec_type]

    def get_all_conflicts(self) -> List[Conflict]:
        return list(self.conflicts)

    def get_conflicts_by_type(self, conflict_type: ConflictType | str) -> List[Conflict]:
        return [c for c in self.conflicts if c.type == conflict_type]

    def find_item(self, item_id: str) -> Optional[Recommendation | Conflict]:
        for item in [*self.recommendations, *self.conflicts]:
            if item.id == item_id:
                return item
        return None

    def generate_weather_based_recommendations(self) -> List[Recommendation]:
        weather = self.weather.get_current_weather()
        if weather.impact != WeatherImpact.RESTRICTED:
            return []
        return [weather_recommendation(self.trains.get_all_trains(), weather)]

    def generate_priority_optimization(self, now: Optional[datetime] = None) -> List[Recommendation]:
        now = now or datetime.now()
        if not is_peak_hour(now.hour):
            return []
        return [peak_hour_recommendation(self.trains.get_all_trains())]

    def run_what_if_analysis(self, scenario: WhatIfScenario) -> WhatIfResult:
        original = self.trains.get_train_by_id(scenario.train_id)
        if original is None:
            return WhatIfResult(impact="Train not found")

        projected = project_train(original, scenario)
        fleet = self.trains.get_all_trains()
        projected_fleet = [projected if t.id == original.id else t for t in fleet]

        affected = find_affected_trains(projected, fleet)

        baseline = {conflict_key(c) for c in detect_conflicts(fleet)}
        new_conflicts = [c for c in detect_conflicts(projected_fleet) if conflict_key(c) not in baseline]

        recommendations: List[Recommendation] = []
        if scenario.new_priority and projected.priority > original.priority:
            recommendations.append(Recommendation(
                id=f"WHATIF-{_stamp_ms()}",
                type=RecommendationType.PRIORITY,
                title="Priority Increase Impact",
                description=f"Increasing priority to {projected.priority} will improve scheduling",
                impact=f"Reduce delays for {original.number} by 2-4 minutes",
                confidence=82,
                affected_trains=[original.id],
                timestamp=_now_iso(),
            ))
        if scenario.delay_minutes and scenario.delay_minutes > 0:
            recommendations.append(Recommendation(
                id=f"WHATIF-DELAY-{_stamp_ms()}",
                type=RecommendationType.DELAY,
                title="Delay Impact Analysis",
                description=f"Adding {scenario.delay_minutes} minutes delay will affect downstream services",
                impact=f"{len(affected)} trains may experience cascading delays",
                confidence=75,
                affected_trains=[t.id for t in affected],
                timestamp=_now_iso(),
            ))

        logger.info(
            f"What-if for {original.id}: {len(affected)} affected, {len(new_conflicts)} new conflict(s)"
        )
        return WhatIfResult(
            impact=scenario_impact(scenario, original, projected),
            affected_trains=[t.id for t in affected],
            new_conflicts=new_conflicts,
            recommendations=recommendations,
        )
