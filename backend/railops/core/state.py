"""
RailwayState - the process-wide container for every stateful service.

Built once by ``create_app()`` and handed to route handlers through a FastAPI
dependency. Every mutation (request updates and background ticks) goes
through ``write_lock`` so only one writer is ever in flight.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from railops.core.config import Settings, settings as default_settings
from railops.core.weather_engine import WeatherEngine
from railops.services.recommendation_engine import RecommendationEngine
from railops.services.safety_monitor import SafetyMonitor
from railops.services.train_registry import TrainRegistry

logger = logging.getLogger(__name__)


class RailwayState:
    def __init__(
        self,
        trains: TrainRegistry,
        weather: WeatherEngine,
        safety: SafetyMonitor,
        engine: RecommendationEngine,
        seed: Optional[int] = None,
    ):
        self.trains = trains
        self.weather = weather
        self.safety = safety
        self.engine = engine
        self.seed = seed
        self.write_lock = asyncio.Lock()

    @classmethod
    def build(cls, seed: Optional[int] = None, config: Optional[Settings] = None) -> "RailwayState":
        config = config or default_settings
        trains = TrainRegistry(seed=seed)
        weather = WeatherEngine(seed=seed, change_probability=config.WEATHER_CHANGE_PROBABILITY)
        safety = SafetyMonitor(
            trains,
            weather,
            retention=timedelta(seconds=config.RESOLVED_ALERT_RETENTION_SECONDS),
        )
        engine = RecommendationEngine(trains, weather)
        logger.info(f"Railway state built (seed={seed})")
        return cls(trains, weather, safety, engine, seed=seed)

    # Tick bodies shared by the scheduler and the refresh endpoints
    async def tick_weather(self) -> bool:
        async with self.write_lock:
            return self.weather.update_weather()

    async def tick_safety(self) -> None:
        async with self.write_lock:
            self.safety.run_safety_check()

    async def tick_analysis(self) -> None:
        async with self.write_lock:
            self.engine.update_analysis()
