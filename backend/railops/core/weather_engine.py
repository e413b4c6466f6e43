"""
Weather Engine for the operations dashboard.
Holds the single current weather snapshot and derives operational speed
restrictions from it.
"""
import logging
import random
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from railops.core.models import WeatherImpact, WeatherSnapshot

logger = logging.getLogger(__name__)

CONDITIONS = ["Clear", "Partly Cloudy", "Cloudy", "Light Rain", "Heavy Rain", "Fog", "Thunderstorm"]

SPEED_RESTRICTIONS_KMPH = {
    WeatherImpact.RESTRICTED: 25,
    WeatherImpact.CAUTION: 50,
    WeatherImpact.NORMAL: 120,
}

# Fog thinner than this closes the line down to restricted running
FOG_RESTRICTED_VISIBILITY_KM = 2.0


def impact_for(condition: str, visibility_km: float) -> WeatherImpact:
    """Classify the operational impact of a weather condition."""
    if condition == "Fog":
        return WeatherImpact.RESTRICTED if visibility_km < FOG_RESTRICTED_VISIBILITY_KM else WeatherImpact.CAUTION
    if condition in ("Heavy Rain", "Thunderstorm", "Light Rain"):
        return WeatherImpact.CAUTION
    return WeatherImpact.NORMAL


def speed_restriction_for(impact: WeatherImpact) -> int:
    """Maximum permitted line speed (km/h) for an impact level."""
    return SPEED_RESTRICTIONS_KMPH[WeatherImpact(impact)]


def _visibility_for(condition: str, rng: random.Random) -> float:
    if condition == "Fog":
        return rng.random() * 2 + 0.5  # 0.5-2.5 km
    if condition in ("Heavy Rain", "Thunderstorm"):
        return rng.random() * 3 + 2  # 2-5 km
    if condition == "Light Rain":
        return rng.random() * 2 + 5  # 5-7 km
    return rng.random() * 5 + 8  # 8-13 km


def generate_weather(rng: random.Random) -> WeatherSnapshot:
    condition = rng.choice(CONDITIONS)
    visibility = round(_visibility_for(condition, rng), 1)
    return WeatherSnapshot(
        temperature=rng.randint(20, 34),
        condition=condition,
        visibility=visibility,
        wind_speed=rng.randint(5, 24),
        humidity=rng.randint(40, 79),
        impact=impact_for(condition, visibility),
    )


class WeatherEngine:
    """Manages the current weather snapshot and its effect on operations"""

    def __init__(self, seed: Optional[int] = None, change_probability: float = 0.2):
        self._rng = random.Random(seed)
        self.change_probability = change_probability
        self._current = generate_weather(self._rng)
        self._last_update = datetime.now(timezone.utc)

    def get_current_weather(self) -> WeatherSnapshot:
        return replace(self._current)

    def get_weather_impact(self) -> str:
        weather = self._current
        if weather.impact == WeatherImpact.RESTRICTED:
            return (
                f"Severe weather conditions. Speed restrictions: {speed_restriction_for(weather.impact)} km/h. "
                f"Visibility: {weather.visibility} km."
            )
        if weather.impact == WeatherImpact.CAUTION:
            return (
                f"Caution advised. Speed restrictions: {speed_restriction_for(weather.impact)} km/h. "
                "Monitor conditions closely."
            )
        return "Normal weather conditions. No restrictions."

    def get_speed_restriction(self) -> int:
        return speed_restriction_for(self._current.impact)

    def get_last_update(self) -> datetime:
        return self._last_update

    def update_weather(self) -> bool:
        """Timer tick: replace the snapshot with the configured probability."""
        if self._rng.random() < self.change_probability:
            self.refresh()
            return True
        return False

    def refresh(self) -> WeatherSnapshot:
        """Unconditionally regenerate the snapshot."""
        self._current = generate_weather(self._rng)
        self._last_update = datetime.now(timezone.utc)
        logger.info(
            f"Weather updated: {self._current.condition}, visibility {self._current.visibility} km, "
            f"impact {self._current.impact.value}"
        )
        return self.get_current_weather()

    def set_weather(self, snapshot: WeatherSnapshot) -> None:
        """Install a specific snapshot; impact is recomputed from condition and visibility."""
        self._current = replace(snapshot, impact=impact_for(snapshot.condition, snapshot.visibility))
        self._last_update = datetime.now(timezone.utc)
