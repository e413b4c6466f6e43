import os
import logging
from dotenv import load_dotenv

# Reload .env file to pick up changes
load_dotenv(override=True)

logger = logging.getLogger(__name__)


def _optional_int(name: str) -> int | None:
	raw = os.getenv(name)
	if raw is None or raw.strip() == "":
		return None
	try:
		return int(raw)
	except ValueError:
		logger.warning(f"{name}={raw!r} is not an integer; ignoring")
		return None


class Settings:
	APP_NAME: str = os.getenv("APP_NAME", "RailOps DSS")
	ENV: str = os.getenv("ENV", "dev")
	API_PREFIX: str = os.getenv("API_PREFIX", "/api")
	LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
	CORS_ALLOW_ORIGINS: str | None = os.getenv("CORS_ALLOW_ORIGINS")

	# Seed for the mock data generators; unset means fresh randomness per start
	MOCK_SEED: int | None = _optional_int("MOCK_SEED")

	ENABLE_BACKGROUND_TASKS: bool = os.getenv("ENABLE_BACKGROUND_TASKS", "true").lower() == "true"
	WEATHER_UPDATE_INTERVAL_SECONDS: float = float(os.getenv("WEATHER_UPDATE_INTERVAL_SECONDS", "300"))
	SAFETY_CHECK_INTERVAL_SECONDS: float = float(os.getenv("SAFETY_CHECK_INTERVAL_SECONDS", "60"))
	AI_ANALYSIS_INTERVAL_SECONDS: float = float(os.getenv("AI_ANALYSIS_INTERVAL_SECONDS", "120"))

	WEATHER_CHANGE_PROBABILITY: float = float(os.getenv("WEATHER_CHANGE_PROBABILITY", "0.2"))
	RESOLVED_ALERT_RETENTION_SECONDS: int = int(os.getenv("RESOLVED_ALERT_RETENTION_SECONDS", "3600"))

	def __init__(self):
		"""Validate tick configuration on initialization"""
		self._validate_intervals()

	def _validate_intervals(self):
		for name in (
			"WEATHER_UPDATE_INTERVAL_SECONDS",
			"SAFETY_CHECK_INTERVAL_SECONDS",
			"AI_ANALYSIS_INTERVAL_SECONDS",
		):
			if getattr(self, name) <= 0:
				logger.warning(f"{name} must be positive; background task for it will not be scheduled")
		if not 0.0 <= self.WEATHER_CHANGE_PROBABILITY <= 1.0:
			logger.warning(
				f"WEATHER_CHANGE_PROBABILITY={self.WEATHER_CHANGE_PROBABILITY} outside [0, 1]; clamping"
			)
			self.WEATHER_CHANGE_PROBABILITY = max(0.0, min(1.0, self.WEATHER_CHANGE_PROBABILITY))

	@property
	def cors_origins(self) -> list[str]:
		if self.CORS_ALLOW_ORIGINS:
			return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]
		return [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
		]


settings = Settings()
