"""
Domain records for the railway operations dashboard.

Records are plain dataclasses mutated only by their owning service. The
dashboard speaks camelCase JSON, so every record exposes ``to_dict()`` which
renames snake_case attributes and flattens enums to their values.
"""
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class TrainType(str, Enum):
    EMU = "EMU"
    EXPRESS = "Express"
    SUPERFAST = "Superfast"
    FREIGHT = "Freight"


class TrainStatus(str, Enum):
    ON_TIME = "On Time"
    DELAYED = "Delayed"
    CANCELLED = "Cancelled"
    DEPARTED = "Departed"


class WeatherImpact(str, Enum):
    NORMAL = "Normal"
    CAUTION = "Caution"
    RESTRICTED = "Restricted"


class AlertType(str, Enum):
    WEATHER = "Weather"
    MAINTENANCE = "Maintenance"
    SIGNAL = "Signal"
    TRACK = "Track"
    EMERGENCY = "Emergency"


class AlertSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ConflictType(str, Enum):
    PLATFORM = "Platform"
    TRACK = "Track"
    SIGNAL = "Signal"
    TIMING = "Timing"


class RecommendationType(str, Enum):
    PRIORITY = "Priority"
    ROUTE = "Route"
    PLATFORM = "Platform"
    DELAY = "Delay"


MIN_PRIORITY = 1
MAX_PRIORITY = 10


def clamp_priority(value: int) -> int:
    return max(MIN_PRIORITY, min(MAX_PRIORITY, int(value)))


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return {_camel(f.name): _serialize(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass
class Coordinates(_Serializable):
    lat: float
    lng: float


@dataclass(frozen=True)
class Station(_Serializable):
    id: str
    code: str
    name: str
    platforms: int
    coordinates: Coordinates
    distance: float  # km from Chennai Central


@dataclass
class Train(_Serializable):
    id: str
    number: str
    name: str
    type: TrainType
    status: TrainStatus
    current_station: str
    next_station: str
    speed: int
    delay: int  # minutes
    passenger_load: int  # percentage
    estimated_arrival: str  # HH:MM
    estimated_departure: str  # HH:MM
    route: List[str]
    priority: int
    coordinates: Coordinates
    platform: Optional[str] = None


@dataclass
class WeatherSnapshot(_Serializable):
    temperature: int
    condition: str
    visibility: float  # km
    wind_speed: int
    humidity: int
    impact: WeatherImpact


@dataclass
class SafetyAlert(_Serializable):
    id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    timestamp: str
    affected_trains: List[str] = field(default_factory=list)
    affected_stations: List[str] = field(default_factory=list)
    resolved: bool = False


@dataclass
class Conflict(_Serializable):
    id: str
    type: ConflictType
    trains: List[str]
    station: str
    description: str
    suggested_resolution: str
    priority: int
    timestamp: str


@dataclass
class Recommendation(_Serializable):
    id: str
    type: RecommendationType
    title: str
    description: str
    impact: str
    confidence: int
    affected_trains: List[str]
    timestamp: str
