"""
Train Registry - holds the in-memory fleet and the only code paths that
mutate train records.

The fleet is seeded from a ``random.Random`` so a test suite (or MOCK_SEED)
can pin the generated shapes. Randomness is a seeding convenience only; the
registry does not model any stochastic process after construction.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from railops.core.models import (
    Coordinates,
    Train,
    TrainStatus,
    TrainType,
    clamp_priority,
)
from railops.data.stations import STATIONS

logger = logging.getLogger(__name__)

SEED_STATUSES = [TrainStatus.ON_TIME, TrainStatus.DELAYED, TrainStatus.DEPARTED]


@dataclass(frozen=True)
class FleetProfile:
    """Generation ranges for one train type (inclusive bounds)."""
    train_type: TrainType
    count: int
    id_prefix: str
    number: Callable[[int], str]
    name: Callable[[int], str]
    speed: Tuple[int, int]
    delay: Tuple[int, int]
    load: Tuple[int, int]
    priority: Tuple[int, int]
    arrival_offset: Tuple[int, int]
    departure_offset: Tuple[int, int]
    route_length: Optional[Tuple[int, int]]  # None means the full corridor
    platforms: Optional[int]  # None means no platform assignment


FLEET_PROFILES: List[FleetProfile] = [
    FleetProfile(
        train_type=TrainType.EMU, count=15, id_prefix="EMU",
        number=lambda i: f"43{i:03d}", name=lambda i: f"EMU Local {i}",
        speed=(20, 79), delay=(0, 14), load=(60, 99), priority=(3, 5),
        arrival_offset=(0, 29), departure_offset=(2, 34),
        route_length=(8, 12), platforms=4,
    ),
    FleetProfile(
        train_type=TrainType.EXPRESS, count=6, id_prefix="EXP",
        number=lambda i: f"166{i}", name=lambda i: f"Chennai Express {i}",
        speed=(80, 119), delay=(0, 19), load=(70, 99), priority=(6, 8),
        arrival_offset=(0, 59), departure_offset=(5, 64),
        route_length=None, platforms=6,
    ),
    FleetProfile(
        train_type=TrainType.SUPERFAST, count=3, id_prefix="SF",
        number=lambda i: f"1284{i}", name=lambda i: f"Coromandel Superfast {i}",
        speed=(100, 129), delay=(0, 9), load=(75, 99), priority=(8, 10),
        arrival_offset=(0, 44), departure_offset=(3, 49),
        route_length=None, platforms=6,
    ),
    FleetProfile(
        train_type=TrainType.FREIGHT, count=3, id_prefix="FRT",
        number=lambda i: f"560{i}", name=lambda i: f"Freight {i}",
        speed=(40, 69), delay=(0, 29), load=(0, 0), priority=(1, 2),
        arrival_offset=(0, 119), departure_offset=(10, 129),
        route_length=(6, 13), platforms=None,
    ),
]


def format_clock(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def generate_fleet(
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
    profiles: Optional[List[FleetProfile]] = None,
) -> List[Train]:
    """Build a fresh synthetic fleet. Same seed and ``now`` give the same fleet."""
    rng = random.Random(seed)
    now = now or datetime.now()
    trains: List[Train] = []

    for profile in profiles or FLEET_PROFILES:
        for i in range(1, profile.count + 1):
            if profile.route_length is None:
                route = [s.code for s in STATIONS]
            else:
                route = [s.code for s in STATIONS[: rng.randint(*profile.route_length)]]

            idx = rng.randrange(len(route))
            current = route[idx]
            nxt = route[min(idx + 1, len(route) - 1)]
            station = STATIONS[idx]

            arrival = now + timedelta(minutes=rng.randint(*profile.arrival_offset))
            departure = now + timedelta(minutes=rng.randint(*profile.departure_offset))

            trains.append(Train(
                id=f"{profile.id_prefix}-{i:03d}",
                number=profile.number(i),
                name=profile.name(i),
                type=profile.train_type,
                status=rng.choice(SEED_STATUSES),
                current_station=current,
                next_station=nxt,
                speed=rng.randint(*profile.speed),
                delay=rng.randint(*profile.delay),
                passenger_load=rng.randint(*profile.load),
                platform=str(rng.randint(1, profile.platforms)) if profile.platforms else None,
                estimated_arrival=format_clock(arrival),
                estimated_departure=format_clock(departure),
                route=route,
                priority=rng.randint(*profile.priority),
                coordinates=Coordinates(
                    lat=station.coordinates.lat + (rng.random() - 0.5) * 0.01,
                    lng=station.coordinates.lng + (rng.random() - 0.5) * 0.01,
                ),
            ))

    return trains


class TrainRegistry:
    """In-memory fleet with lookup, filter and update operations."""

    def __init__(self, seed: Optional[int] = None, trains: Optional[List[Train]] = None):
        self.seed = seed
        self._trains: List[Train] = []
        self._index: Dict[str, Train] = {}
        if trains is None:
            trains = generate_fleet(seed)
        for train in trains:
            self.add_train(train)
        logger.info(f"Train registry initialised with {len(self._trains)} trains (seed={seed})")

    # ------------------------------------------------------------------ queries
    def get_all_trains(self) -> List[Train]:
        return list(self._trains)

    def get_train_by_id(self, train_id: str) -> Optional[Train]:
        return self._index.get(train_id)

    def get_trains_by_type(self, train_type: TrainType | str) -> List[Train]:
        return [t for t in self._trains if t.type == train_type]

    def get_trains_by_station(self, station_code: str) -> List[Train]:
        return [
            t for t in self._trains
            if t.current_station == station_code
            or t.next_station == station_code
            or station_code in t.route
        ]

    # ------------------------------------------------------------------ updates
    def add_train(self, train: Train) -> bool:
        if train.id in self._index:
            logger.warning(f"Train {train.id} already registered; ignoring duplicate")
            return False
        train.priority = clamp_priority(train.priority)
        self._trains.append(train)
        self._index[train.id] = train
        return True

    def update_train_position(self, train_id: str, station_code: str) -> bool:
        train = self.get_train_by_id(train_id)
        if train is None or station_code not in train.route:
            return False
        idx = train.route.index(station_code)
        train.current_station = station_code
        train.next_station = train.route[idx + 1] if idx + 1 < len(train.route) else train.route[-1]
        return True

    def update_train_status(
        self,
        train_id: str,
        status: Optional[TrainStatus] = None,
        delay: Optional[int] = None,
    ) -> bool:
        train = self.get_train_by_id(train_id)
        if train is None:
            return False
        if status is not None:
            train.status = TrainStatus(status)
        if delay is not None:
            train.delay = delay
        return True

    def update_train_priority(self, train_id: str, priority: int) -> bool:
        """Set priority, clamped to 1-10."""
        train = self.get_train_by_id(train_id)
        if train is None:
            return False
        clamped = clamp_priority(priority)
        if clamped != priority:
            logger.info(f"Priority {priority} for {train_id} clamped to {clamped}")
        train.priority = clamped
        return True

    def regenerate(self, seed: Optional[int] = None) -> List[Train]:
        """Discard the fleet and seed a new one."""
        self.seed = seed
        self._trains = []
        self._index = {}
        for train in generate_fleet(seed):
            self.add_train(train)
        logger.info(f"Train registry regenerated with {len(self._trains)} trains (seed={seed})")
        return self.get_all_trains()
