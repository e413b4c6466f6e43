"""
Safety Monitor - rule-based checks over the live fleet and weather.

Each pass prunes stale resolved alerts, runs the compliance checks and
appends only alerts that do not duplicate an unresolved (type, title) pair,
so repeated ticks do not flood the dashboard.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from railops.core.models import (
    AlertSeverity,
    AlertType,
    SafetyAlert,
    Train,
    TrainStatus,
    WeatherImpact,
)
from railops.core.weather_engine import WeatherEngine
from railops.services.train_registry import TrainRegistry

logger = logging.getLogger(__name__)

EXCESSIVE_DELAY_MINUTES = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_alert_id() -> str:
    return f"ALERT-{int(_now().timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"


class SafetyMonitor:
    def __init__(
        self,
        trains: TrainRegistry,
        weather: WeatherEngine,
        retention: timedelta = timedelta(hours=1),
    ):
        self.trains = trains
        self.weather = weather
        self.retention = retention
        self.alerts: List[SafetyAlert] = self._initial_alerts()

    @staticmethod
    def _initial_alerts() -> List[SafetyAlert]:
        stamp = _now().isoformat()
        return [
            SafetyAlert(
                id="ALERT-001",
                type=AlertType.MAINTENANCE,
                severity=AlertSeverity.MEDIUM,
                title="Platform 3 Maintenance",
                description="Scheduled maintenance work on Platform 3 at Chennai Central",
                affected_trains=["EMU-001", "EMU-002"],
                affected_stations=["MAS"],
                timestamp=stamp,
            ),
            SafetyAlert(
                id="ALERT-002",
                type=AlertType.WEATHER,
                severity=AlertSeverity.LOW,
                title="Weather Advisory",
                description="Light rain expected in the evening. Monitor track conditions.",
                affected_stations=["MAS", "PER", "VLK"],
                timestamp=stamp,
            ),
        ]

    # ------------------------------------------------------------------ reads
    def get_all_alerts(self) -> List[SafetyAlert]:
        return [a for a in self.alerts if not a.resolved]

    def get_alerts_by_type(self, alert_type: AlertType | str) -> List[SafetyAlert]:
        return [a for a in self.alerts if a.type == alert_type and not a.resolved]

    def get_alerts_by_severity(self, severity: AlertSeverity | str) -> List[SafetyAlert]:
        return [a for a in self.alerts if a.severity == severity and not a.resolved]

    def get_alert_by_id(self, alert_id: str) -> Optional[SafetyAlert]:
        """Unresolved alert with this id, or None."""
        for alert in self.alerts:
            if alert.id == alert_id and not alert.resolved:
                return alert
        return None

    # ------------------------------------------------------------------ writes
    def create_alert(self, fields: Dict[str, Any]) -> SafetyAlert:
        """Register an alert from record fields (``type``, ``severity``, ``title``, ...)."""
        fields = dict(fields)
        alert = self._build_alert(alert_type=fields.pop("type"), **fields)
        self.alerts.append(alert)
        logger.info(f"Alert {alert.id} created: [{alert.severity.value}] {alert.title}")
        return alert

    def resolve_alert(self, alert_id: str) -> bool:
        for alert in self.alerts:
            if alert.id == alert_id:
                alert.resolved = True
                logger.info(f"Alert {alert_id} resolved")
                return True
        return False

    def run_safety_check(self, now: Optional[datetime] = None) -> List[SafetyAlert]:
        """Prune, run every check, append non-duplicate alerts; return active alerts."""
        now = now or _now()
        self._prune_resolved(now)

        candidates = (
            self.check_weather_compliance()
            + self.check_gsr_compliance()
            + self.check_platform_occupancy()
            + self.check_signal_compliance()
        )

        # Keys are taken before the pass so every finding of one kind lands together
        existing = {(a.type, a.title) for a in self.alerts if not a.resolved}
        added = 0
        for candidate in candidates:
            if (candidate.type, candidate.title) not in existing:
                self.alerts.append(candidate)
                added += 1

        if added:
            logger.info(f"Safety check raised {added} new alert(s) from {len(candidates)} finding(s)")
        return self.get_all_alerts()

    def _prune_resolved(self, now: datetime) -> None:
        kept = []
        for alert in self.alerts:
            if alert.resolved and now - datetime.fromisoformat(alert.timestamp) >= self.retention:
                continue
            kept.append(alert)
        pruned = len(self.alerts) - len(kept)
        if pruned:
            logger.debug(f"Pruned {pruned} resolved alert(s)")
        self.alerts = kept

    # ------------------------------------------------------------------ checks
    def check_speed_compliance(self, train: Train) -> bool:
        return train.speed <= self.weather.get_speed_restriction()

    def check_weather_compliance(self) -> List[SafetyAlert]:
        weather = self.weather.get_current_weather()
        all_ids = [t.id for t in self.trains.get_all_trains()]

        if weather.impact == WeatherImpact.RESTRICTED:
            return [self._build_alert(
                alert_type=AlertType.WEATHER,
                severity=AlertSeverity.HIGH,
                title="Severe Weather Conditions",
                description=(
                    f"{weather.condition} with visibility {weather.visibility} km. "
                    f"Speed restricted to {self.weather.get_speed_restriction()} km/h."
                ),
                affected_trains=all_ids,
                affected_stations=["MAS", "PER", "VLK", "KOK", "WST"],
            )]
        if weather.impact == WeatherImpact.CAUTION:
            return [self._build_alert(
                alert_type=AlertType.WEATHER,
                severity=AlertSeverity.MEDIUM,
                title="Weather Caution",
                description=(
                    f"{weather.condition}. Speed restricted to "
                    f"{self.weather.get_speed_restriction()} km/h. Monitor conditions."
                ),
                affected_trains=all_ids,
                affected_stations=["MAS", "PER", "VLK"],
            )]
        return []

    def check_gsr_compliance(self) -> List[SafetyAlert]:
        """General & Subsidiary Rules: speed against the weather restriction."""
        max_speed = self.weather.get_speed_restriction()
        return [
            self._build_alert(
                alert_type=AlertType.SIGNAL,
                severity=AlertSeverity.HIGH,
                title="Speed Limit Violation",
                description=(
                    f"Train {t.number} exceeding speed limit. "
                    f"Current: {t.speed} km/h, Max: {max_speed} km/h"
                ),
                affected_trains=[t.id],
                affected_stations=[t.current_station],
            )
            for t in self.trains.get_all_trains()
            if not self.check_speed_compliance(t)
        ]

    def check_platform_occupancy(self) -> List[SafetyAlert]:
        occupancy: Dict[tuple, List[Train]] = {}
        for train in self.trains.get_all_trains():
            if train.platform and train.status != TrainStatus.DEPARTED:
                occupancy.setdefault((train.current_station, train.platform), []).append(train)

        return [
            self._build_alert(
                alert_type=AlertType.TRACK,
                severity=AlertSeverity.CRITICAL,
                title="Platform Conflict",
                description=f"Multiple trains assigned to {station} Platform {platform}",
                affected_trains=[t.id for t in group],
                affected_stations=[station],
            )
            for (station, platform), group in occupancy.items()
            if len(group) > 1
        ]

    def check_signal_compliance(self) -> List[SafetyAlert]:
        return [
            self._build_alert(
                alert_type=AlertType.SIGNAL,
                severity=AlertSeverity.MEDIUM,
                title="Excessive Delay",
                description=f"Train {t.number} delayed by {t.delay} minutes",
                affected_trains=[t.id],
                affected_stations=[t.current_station],
            )
            for t in self.trains.get_all_trains()
            if t.delay > EXCESSIVE_DELAY_MINUTES
        ]

    @staticmethod
    def _build_alert(
        alert_type: AlertType | str,
        severity: AlertSeverity | str,
        title: str,
        description: str,
        affected_trains: Optional[List[str]] = None,
        affected_stations: Optional[List[str]] = None,
        resolved: bool = False,
    ) -> SafetyAlert:
        return SafetyAlert(
            id=new_alert_id(),
            type=AlertType(alert_type),
            severity=AlertSeverity(severity),
            title=title,
            description=description,
            affected_trains=list(affected_trains or []),
            affected_stations=list(affected_stations or []),
            timestamp=_now().isoformat(),
            resolved=resolved,
        )
