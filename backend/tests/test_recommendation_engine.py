"""Tests for conflict detection, recommendation rules and what-if analysis"""
from datetime import datetime

from railops.core.models import (
    ConflictType,
    RecommendationType,
    TrainStatus,
    TrainType,
    WeatherImpact,
    WeatherSnapshot,
)
from railops.services.recommendation_engine import (
    WhatIfScenario,
    conflict_priority,
    detect_conflicts,
    detect_platform_conflicts,
    detect_timing_conflicts,
    detect_track_conflicts,
    generate_recommendations,
    shift_clock,
)

from factories import CLEAR, make_state, make_train

FOG = WeatherSnapshot(
    temperature=21, condition="Fog", visibility=1.0, wind_speed=6, humidity=92,
    impact=WeatherImpact.RESTRICTED,
)
OFF_PEAK = datetime(2026, 3, 2, 13, 0)
MORNING_PEAK = datetime(2026, 3, 2, 9, 15)


# ---------------------------------------------------------------- conflicts
def test_platform_conflict_names_both_trains():
    a = make_train("EMU-001", platform="1", priority=4, passenger_load=80, estimated_arrival="10:00")
    b = make_train("EXP-001", platform="1", priority=7, passenger_load=90, estimated_arrival="10:30",
                   type=TrainType.EXPRESS, next_station="VLK")
    conflicts = detect_platform_conflicts([a, b])
    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.type == ConflictType.PLATFORM
    assert conflict.trains == ["EMU-001", "EXP-001"]
    assert conflict.station == "MAS"
    # floor(7 + 170 / 100) = 8
    assert conflict.priority == 8
    assert conflict.suggested_resolution.startswith(f"Assign Platform to {b.number} (Priority: 7)")


def test_departed_and_platformless_trains_ignored():
    trains = [
        make_train("EMU-001", platform="1"),
        make_train("EMU-002", platform="1", status=TrainStatus.DEPARTED),
        make_train("FRT-001", platform=None),
    ]
    assert detect_platform_conflicts(trains) == []


def test_conflict_priority_caps_at_ten():
    trains = [make_train("A", priority=9, passenger_load=99), make_train("B", priority=3, passenger_load=99)]
    assert conflict_priority(trains) == 10
    assert conflict_priority([make_train("C", priority=2, passenger_load=0),
                              make_train("D", priority=1, passenger_load=150)]) == 3


def test_timing_conflict_same_station_same_arrival():
    trains = [
        make_train("EMU-001", estimated_arrival="10:10", priority=3),
        make_train("EMU-002", estimated_arrival="10:10", priority=6, next_station="KOK"),
        make_train("EMU-003", estimated_arrival="10:10", current_station="PER"),
    ]
    conflicts = detect_timing_conflicts(trains)
    assert len(conflicts) == 1
    assert conflicts[0].trains == ["EMU-001", "EMU-002"]
    assert "Delay others by 2-3 minutes" in conflicts[0].suggested_resolution
    assert conflicts[0].suggested_resolution.startswith("Maintain schedule for EMU002")


def test_track_conflict_requires_close_arrivals():
    close = [
        make_train("EMU-001", estimated_arrival="10:00", priority=2),
        make_train("EMU-002", estimated_arrival="10:04", priority=6),
    ]
    conflicts = detect_track_conflicts(close)
    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.TRACK
    assert conflicts[0].description == "Multiple trains on same track segment: MAS-PER"
    assert conflicts[0].suggested_resolution == (
        "Give track priority to EMU002. Hold EMU001 at current station for 5 minutes."
    )

    apart = [
        make_train("EMU-001", estimated_arrival="10:00"),
        make_train("EMU-002", estimated_arrival="10:05"),
    ]
    assert detect_track_conflicts(apart) == []


def test_track_headway_ignores_date():
    trains = [
        make_train("EMU-001", estimated_arrival="23:58"),
        make_train("EMU-002", estimated_arrival="23:59"),
    ]
    assert len(detect_track_conflicts(trains)) == 1


def test_detect_conflicts_combines_all_kinds():
    trains = [
        make_train("EMU-001", platform="2", estimated_arrival="10:00"),
        make_train("EMU-002", platform="2", estimated_arrival="10:00"),
    ]
    kinds = sorted(c.type.value for c in detect_conflicts(trains))
    assert kinds == ["Platform", "Timing", "Track"]


# ---------------------------------------------------------------- recommendations
def test_no_rules_fire_on_quiet_off_peak():
    assert generate_recommendations([make_train("EMU-001")], CLEAR, now=OFF_PEAK) == []


def test_peak_hour_rule_targets_emus():
    trains = [make_train("EMU-001"), make_train("EXP-001", type=TrainType.EXPRESS)]
    recs = generate_recommendations(trains, CLEAR, now=MORNING_PEAK)
    assert [r.title for r in recs] == ["Peak Hour Priority Adjustment"]
    assert recs[0].affected_trains == ["EMU-001"]
    assert recs[0].confidence == 88

    for hour, fires in ((7, False), (8, True), (10, True), (11, False), (18, True), (20, True), (21, False)):
        recs = generate_recommendations(trains, CLEAR, now=datetime(2026, 3, 2, hour, 30))
        assert (len(recs) == 1) is fires, hour


def test_weather_rule_uses_speed_restriction():
    recs = generate_recommendations([make_train("EMU-001")], FOG, now=OFF_PEAK)
    assert len(recs) == 1
    assert recs[0].type == RecommendationType.ROUTE
    assert recs[0].description == "Implement 25 km/h speed limit due to fog"
    assert recs[0].impact == "Ensure safety compliance, expect 10-15 minute delays"


def test_platform_reallocation_needs_more_than_three_delayed():
    three = [make_train(f"EMU-00{i}", delay=11, priority=6) for i in range(1, 4)]
    assert generate_recommendations(three, CLEAR, now=OFF_PEAK) == []

    six = [make_train(f"EMU-00{i}", delay=11, priority=6) for i in range(1, 7)]
    recs = generate_recommendations(six, CLEAR, now=OFF_PEAK)
    assert [r.type for r in recs] == [RecommendationType.PLATFORM]
    assert len(recs[0].affected_trains) == 5


def test_priority_rule_for_low_priority_delayed():
    trains = [
        make_train("EMU-001", delay=16, priority=4),
        make_train("EMU-002", delay=16, priority=5),
        make_train("EMU-003", delay=15, priority=1),
    ]
    recs = generate_recommendations(trains, CLEAR, now=OFF_PEAK)
    assert [r.title for r in recs] == ["Priority Adjustment for Delayed Trains"]
    assert recs[0].affected_trains == ["EMU-001"]


def test_engine_views_and_lookup():
    state = make_state([
        make_train("EMU-001", platform="1"),
        make_train("EXP-001", platform="1", type=TrainType.EXPRESS, estimated_arrival="11:00"),
    ], weather=FOG)
    engine = state.engine
    platform = engine.get_conflicts_by_type("Platform")
    assert len(platform) == 1
    assert engine.find_item(platform[0].id) is platform[0]
    assert engine.find_item("missing") is None
    assert len(engine.generate_weather_based_recommendations()) == 1
    assert engine.get_recommendations_by_type(RecommendationType.ROUTE)
    assert engine.generate_priority_optimization(now=OFF_PEAK) == []
    assert len(engine.generate_priority_optimization(now=MORNING_PEAK)) == 1


def test_weather_recommendations_only_when_restricted():
    rain = WeatherSnapshot(
        temperature=26, condition="Heavy Rain", visibility=3.0, wind_speed=12, humidity=80,
        impact=WeatherImpact.CAUTION,
    )
    state = make_state([make_train("EMU-001")], weather=rain)
    assert state.engine.generate_weather_based_recommendations() == []


# ---------------------------------------------------------------- what-if
def _whatif_state():
    return make_state([
        make_train("EMU-001", number="43001", priority=3, delay=2, passenger_load=70,
                   route=["MAS", "PER", "VLK"], platform="1", estimated_arrival="10:00"),
        make_train("EMU-002", number="43002", current_station="PER", next_station="VLK",
                   route=["PER", "VLK"], platform="1", estimated_arrival="10:03"),
        make_train("FRT-001", number="5601", current_station="ENR", next_station="AIP",
                   route=["ENR", "AIP"], type=TrainType.FREIGHT, estimated_arrival="12:00"),
    ])


def test_what_if_unknown_train():
    result = _whatif_state().engine.run_what_if_analysis(WhatIfScenario(train_id="NOPE", new_priority=9))
    assert result.impact == "Train not found"
    assert result.affected_trains == [] and result.new_conflicts == [] and result.recommendations == []


def test_what_if_never_touches_live_train():
    state = _whatif_state()
    scenario = WhatIfScenario(train_id="EMU-001", new_priority=9, delay_minutes=10, new_route=["MAS", "PER"])
    state.engine.run_what_if_analysis(scenario)

    train = state.trains.get_train_by_id("EMU-001")
    assert (train.priority, train.delay, train.route) == (3, 2, ["MAS", "PER", "VLK"])
    assert train.estimated_arrival == "10:00"


def test_what_if_is_repeatable():
    state = _whatif_state()
    scenario = WhatIfScenario(train_id="EMU-001", new_priority=9, delay_minutes=10)
    first = state.engine.run_what_if_analysis(scenario)
    second = state.engine.run_what_if_analysis(scenario)
    assert first.impact == second.impact
    assert first.affected_trains == second.affected_trains
    assert first.impact == (
        "Changes to 43001:\n"
        "- Priority change: 3 → 9\n"
        "- Additional delay: +10 minutes\n"
        "- Estimated passenger impact: 70% capacity affected"
    )


def test_what_if_recommendations_and_affected():
    state = _whatif_state()
    result = state.engine.run_what_if_analysis(
        WhatIfScenario(train_id="EMU-001", new_priority=8, delay_minutes=5)
    )
    # EMU-002 shares PER/VLK with the route; the freight does not
    assert result.affected_trains == ["EMU-002"]
    titles = [r.title for r in result.recommendations]
    assert titles == ["Priority Increase Impact", "Delay Impact Analysis"]
    assert result.recommendations[1].impact == "1 trains may experience cascading delays"


def test_what_if_priority_decrease_gives_no_priority_recommendation():
    result = _whatif_state().engine.run_what_if_analysis(WhatIfScenario(train_id="EMU-001", new_priority=2))
    assert result.recommendations == []


def test_what_if_reports_only_new_conflicts():
    state = make_state([
        make_train("EMU-001", estimated_arrival="10:00", route=["MAS", "PER"]),
        make_train("EMU-002", estimated_arrival="10:07", route=["MAS", "PER"]),
    ])
    # Baseline: 7 minutes apart, no track or timing conflict
    assert state.engine.get_all_conflicts() == []

    result = state.engine.run_what_if_analysis(WhatIfScenario(train_id="EMU-001", delay_minutes=7))
    kinds = sorted(c.type.value for c in result.new_conflicts)
    assert kinds == ["Timing", "Track"]
    assert state.engine.get_all_conflicts() == []


def test_shift_clock_wraps_midnight():
    assert shift_clock("23:55", 10) == "00:05"
    assert shift_clock("bad", 10) == "bad"


def test_what_if_empty_route_counts_as_route_change():
    state = _whatif_state()
    result = state.engine.run_what_if_analysis(WhatIfScenario(train_id="EMU-001", new_route=[]))
    assert "- Route change: 0 stations" in result.impact
    assert state.trains.get_train_by_id("EMU-001").route == ["MAS", "PER", "VLK"]
