"""Tests for the safety monitor checks, deduplication and pruning"""
from datetime import datetime, timedelta, timezone

from railops.core.models import AlertSeverity, AlertType, TrainStatus, WeatherImpact, WeatherSnapshot

from factories import make_state, make_train

FOG = WeatherSnapshot(
    temperature=21, condition="Fog", visibility=1.0, wind_speed=6, humidity=92,
    impact=WeatherImpact.RESTRICTED,
)


def _titles(alerts):
    return [a.title for a in alerts]


def test_initial_alerts_present():
    state = make_state([make_train("EMU-001")])
    ids = [a.id for a in state.safety.get_all_alerts()]
    assert ids == ["ALERT-001", "ALERT-002"]


def test_clear_quiet_fleet_adds_nothing():
    state = make_state([make_train("EMU-001", speed=60)])
    alerts = state.safety.run_safety_check()
    assert _titles(alerts) == ["Platform 3 Maintenance", "Weather Advisory"]


def test_restricted_weather_raises_high_alert_and_speed_violations():
    state = make_state(
        [make_train("EMU-001", speed=60), make_train("EMU-002", speed=20)],
        weather=FOG,
    )
    alerts = state.safety.run_safety_check()

    severe = [a for a in alerts if a.title == "Severe Weather Conditions"]
    assert len(severe) == 1
    assert severe[0].severity == AlertSeverity.HIGH
    assert severe[0].type == AlertType.WEATHER

    speed = [a for a in alerts if a.title == "Speed Limit Violation"]
    assert len(speed) == 1
    assert speed[0].affected_trains == ["EMU-001"]
    assert speed[0].severity == AlertSeverity.HIGH


def test_caution_weather_is_medium():
    rain = WeatherSnapshot(
        temperature=26, condition="Light Rain", visibility=6.0, wind_speed=12, humidity=70,
        impact=WeatherImpact.CAUTION,
    )
    state = make_state([make_train("EMU-001", speed=30)], weather=rain)
    caution = [a for a in state.safety.run_safety_check() if a.title == "Weather Caution"]
    assert len(caution) == 1
    assert caution[0].severity == AlertSeverity.MEDIUM


def test_platform_double_booking_is_critical():
    state = make_state([
        make_train("EMU-001", platform="1"),
        make_train("EMU-002", platform="1"),
        make_train("EMU-003", platform="1", status=TrainStatus.DEPARTED),
        make_train("EMU-004", platform="2"),
    ])
    conflicts = [a for a in state.safety.run_safety_check() if a.title == "Platform Conflict"]
    assert len(conflicts) == 1
    assert conflicts[0].severity == AlertSeverity.CRITICAL
    assert conflicts[0].affected_trains == ["EMU-001", "EMU-002"]
    assert conflicts[0].description == "Multiple trains assigned to MAS Platform 1"


def test_excessive_delay_alert():
    state = make_state([make_train("EMU-001", delay=31), make_train("EMU-002", delay=30)])
    delays = [a for a in state.safety.run_safety_check() if a.title == "Excessive Delay"]
    assert len(delays) == 1
    assert delays[0].affected_trains == ["EMU-001"]
    assert delays[0].severity == AlertSeverity.MEDIUM


def test_repeated_checks_do_not_duplicate():
    state = make_state([make_train("EMU-001", delay=45, speed=90)], weather=FOG)
    first = state.safety.run_safety_check()
    second = state.safety.run_safety_check()
    assert len(first) == len(second)
    keys = [(a.type, a.title) for a in second]
    assert len(keys) == len(set(keys))


def test_resolved_alert_can_be_raised_again():
    state = make_state([make_train("EMU-001", delay=45)])
    alert = next(a for a in state.safety.run_safety_check() if a.title == "Excessive Delay")
    assert state.safety.resolve_alert(alert.id) is True
    again = [a for a in state.safety.run_safety_check() if a.title == "Excessive Delay"]
    assert len(again) == 1
    assert again[0].id != alert.id


def test_resolve_hides_alert_from_every_read():
    state = make_state([make_train("EMU-001")])
    assert state.safety.resolve_alert("UNKNOWN") is False
    assert state.safety.resolve_alert("ALERT-001") is True
    assert "ALERT-001" not in [a.id for a in state.safety.get_all_alerts()]
    assert state.safety.get_alerts_by_type(AlertType.MAINTENANCE) == []
    assert state.safety.get_alerts_by_severity("Medium") == []
    assert state.safety.get_alert_by_id("ALERT-001") is None


def test_resolved_alerts_pruned_after_retention():
    state = make_state([make_train("EMU-001")])
    state.safety.resolve_alert("ALERT-001")

    state.safety.run_safety_check(now=datetime.now(timezone.utc) + timedelta(minutes=30))
    assert "ALERT-001" in [a.id for a in state.safety.alerts]

    state.safety.run_safety_check(now=datetime.now(timezone.utc) + timedelta(hours=2))
    assert "ALERT-001" not in [a.id for a in state.safety.alerts]
    # unresolved alerts survive regardless of age
    assert "ALERT-002" in [a.id for a in state.safety.alerts]


def test_create_alert_assigns_id_and_timestamp():
    state = make_state([make_train("EMU-001")])
    alert = state.safety.create_alert({
        "type": "Emergency",
        "severity": "Critical",
        "title": "Track obstruction",
        "description": "Debris reported near ENR",
        "affected_stations": ["ENR"],
    })
    assert alert.id.startswith("ALERT-")
    assert alert.type == AlertType.EMERGENCY
    assert datetime.fromisoformat(alert.timestamp).tzinfo is not None
    assert state.safety.get_alert_by_id(alert.id) is alert


def test_speed_compliance_against_restriction():
    state = make_state([make_train("EMU-001")], weather=FOG)
    assert state.safety.check_speed_compliance(make_train("X", speed=25)) is True
    assert state.safety.check_speed_compliance(make_train("Y", speed=26)) is False


def test_every_speeding_train_gets_its_own_alert():
    state = make_state(
        [make_train("EMU-001", speed=60), make_train("EMU-002", speed=70), make_train("EMU-003", speed=20)],
        weather=FOG,
    )
    speed = [a for a in state.safety.run_safety_check() if a.title == "Speed Limit Violation"]
    assert [a.affected_trains for a in speed] == [["EMU-001"], ["EMU-002"]]

    # the next pass finds the same violations already open
    again = [a for a in state.safety.run_safety_check() if a.title == "Speed Limit Violation"]
    assert [a.id for a in again] == [a.id for a in speed]


def test_every_excessively_delayed_train_gets_its_own_alert():
    state = make_state([make_train("EMU-001", delay=40), make_train("EMU-002", delay=50)])
    delays = [a for a in state.safety.run_safety_check() if a.title == "Excessive Delay"]
    assert sorted(a.affected_trains[0] for a in delays) == ["EMU-001", "EMU-002"]


def test_double_bookings_at_two_stations_both_reported():
    state = make_state([
        make_train("EMU-001", platform="1"),
        make_train("EMU-002", platform="1"),
        make_train("EMU-003", platform="2", current_station="PER", next_station="VLK"),
        make_train("EMU-004", platform="2", current_station="PER", next_station="VLK"),
    ])
    conflicts = [a for a in state.safety.run_safety_check() if a.title == "Platform Conflict"]
    assert sorted(a.description for a in conflicts) == [
        "Multiple trains assigned to MAS Platform 1",
        "Multiple trains assigned to PER Platform 2",
    ]


def test_create_alert_leaves_caller_fields_alone():
    state = make_state([make_train("EMU-001")])
    fields = {"type": "Track", "severity": "High", "title": "Rail crack", "description": "KM 31"}
    alert = state.safety.create_alert(fields)
    assert alert.type == AlertType.TRACK
    assert fields["type"] == "Track"
