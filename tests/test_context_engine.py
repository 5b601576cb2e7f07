import asyncio
import pytest
from datetime import datetime, timedelta

from aria.domain.context.insight_generator import InsightGenerator
from aria.domain.models.assistant_state import (
    AudioData, CurrentLocation, DeviceState, Insight, InsightType, LocationReading, Priority,
    SensorSnapshot, TimeOfDay, Vector3Reading, VisionAnalysis
)
from aria.domain.reasoning.response_parser import DEFAULT_REASONING
from aria.infrastructure.platform.sensors import NetworkState

from conftest import make_context


def insight(id: str, timestamp: datetime, priority: Priority = Priority.LOW) -> Insight:
    return Insight(
        id=id,
        type=InsightType.OBSERVATION,
        priority=priority,
        title=id,
        description="test insight",
        confidence=0.5,
        timestamp=timestamp
    )


def titles(insights):
    return [i.title for i in insights]


class TestUpdateContext:

    @pytest.mark.asyncio
    async def test_missing_device_info_defaults(self, context_engine):
        context = await context_engine.update_context()

        assert context.device_state == DeviceState(battery=100, connectivity="unknown")
        assert context.current_location is None
        assert context.recent_activity == []
        assert context.time_of_day == TimeOfDay.AFTERNOON

    @pytest.mark.asyncio
    async def test_activity_tags_from_every_input(self, context_engine):
        context = await context_engine.update_context(
            SensorSnapshot(
                accelerometer=Vector3Reading(x=0.0, y=0.0, z=9.8),
                location=LocationReading(latitude=51.5, longitude=-0.12, address="London")
            ),
            VisionAnalysis(description="a desk", objects=["laptop", "mug"]),
            AudioData(transcription="hello there")
        )

        assert context.recent_activity == [
            "user_stationary", "device_face_up", "camera_used", "observed_laptop",
            "voice_interaction", "speech_detected", "location_tracked",
        ]
        assert context.current_location.address == "London"

    @pytest.mark.asyncio
    async def test_history_is_bounded_fifo(self, context_engine, clock):
        start = clock.now()
        for _ in range(105):
            clock.advance(seconds=1)
            await context_engine.update_context()

        history = context_engine.get_context_history()
        assert len(history) == 100
        assert history[0].created_at == start + timedelta(seconds=6)
        assert context_engine.get_latest_context().created_at == start + timedelta(seconds=105)

    @pytest.mark.asyncio
    async def test_has_recent_activity(self, context_engine, clock):
        await context_engine.update_context(SensorSnapshot(accelerometer=Vector3Reading(x=0, y=0, z=9.8)))

        assert context_engine.has_recent_activity("user_stationary") is True
        assert context_engine.has_recent_activity("user_walking") is False

        clock.advance(minutes=31)
        assert context_engine.has_recent_activity("user_stationary") is False


class TestAnalyzeCurrentContext:

    @pytest.mark.asyncio
    async def test_low_battery_alert(self, context_engine, sensor_manager, sensor_source):
        sensor_source.battery = 0.15
        await sensor_manager.start_collection()

        insights = await context_engine.analyze_current_context()

        assert titles(insights) == ["Low Battery Detected"]
        assert insights[0].priority == Priority.HIGH
        assert insights[0].id.startswith(f"battery_low_{int(datetime(2026, 10, 18, 14).timestamp() * 1000)}_")
        assert titles(context_engine.get_high_priority_insights()) == ["Low Battery Detected"]

    @pytest.mark.asyncio
    async def test_stationary_afternoon_recommendation(self, context_engine, sensor_manager, sensor_source):
        await sensor_manager.start_collection()
        sensor_source.push("accelerometer", {"x": 0.0, "y": 0.0, "z": 9.8})

        insights = await context_engine.analyze_current_context()

        assert titles(insights) == ["Afternoon Activity Suggestion"]

    @pytest.mark.asyncio
    async def test_evening_location_observation(self, context_engine, sensor_manager, clock):
        clock.current = datetime(2026, 10, 18, 19, 0)
        await sensor_manager.start_collection()

        insights = await context_engine.analyze_current_context()

        assert titles(insights) == ["Evening Location Check"]
        assert "37.7749, -122.4194" in insights[0].description

    @pytest.mark.asyncio
    async def test_offline_alert(self, context_engine, sensor_manager, sensor_source):
        sensor_source.network = NetworkState(is_connected=False)
        await sensor_manager.start_collection()

        insights = await context_engine.analyze_current_context()

        assert titles(insights) == ["Device Offline"]

    @pytest.mark.asyncio
    async def test_stable_location_after_ten_samples(self, context_engine, sensor_manager):
        await sensor_manager.start_collection()

        for _ in range(9):
            assert await context_engine.analyze_current_context() == []

        insights = await context_engine.analyze_current_context()
        assert titles(insights) == ["Stable Location Detected"]

    @pytest.mark.asyncio
    async def test_single_flight(self, context_engine, clock):
        retained = [insight("kept", clock.now())]
        context_engine.insights = list(retained)
        context_engine.is_analyzing = True

        result = await context_engine.analyze_current_context()

        assert result == retained
        assert context_engine.get_context_history() == []

    @pytest.mark.asyncio
    async def test_failure_returns_empty_and_clears_flag(self, context_engine, sensor_manager, monkeypatch):
        def broken():
            raise RuntimeError("sensor bus gone")

        monkeypatch.setattr(sensor_manager, "get_current_data", broken)

        assert await context_engine.analyze_current_context() == []
        assert context_engine.is_analyzing is False

    @pytest.mark.asyncio
    async def test_monitoring_lifecycle(self, context_engine, clock):
        context_engine.stop_monitoring()

        context_engine.start_monitoring()
        await asyncio.sleep(0)
        assert context_engine.is_monitoring
        assert clock.sleeps == [30]

        context_engine.stop_monitoring()
        assert not context_engine.is_monitoring


class TestRecordInsights:

    def test_expired_insights_are_dropped(self, context_engine, clock):
        now = clock.now()
        context_engine.record_insights([insight("old", now - timedelta(hours=2)), insight("new", now)])

        assert titles(context_engine.get_current_insights()) == ["new"]

    @pytest.mark.asyncio
    async def test_next_analysis_evicts_stale_insight(self, context_engine, clock):
        context_engine.insights = [insight("stale", clock.now() - timedelta(hours=1, minutes=1))]

        await context_engine.analyze_current_context()

        assert "stale" not in titles(context_engine.get_current_insights())

    def test_newest_fifty_are_kept(self, context_engine, clock):
        now = clock.now()
        context_engine.record_insights([insight(f"i{n}", now - timedelta(seconds=n)) for n in range(60)])

        kept = context_engine.get_current_insights()
        assert len(kept) == 50
        assert kept[0].title == "i0"
        assert kept[-1].title == "i49"


class TestInsightGenerator:

    def test_ids_are_unique_within_one_millisecond(self, clock):
        low = make_context(device_state=DeviceState(battery=10))
        generator = InsightGenerator()

        first = generator.from_current_context(low, SensorSnapshot(), clock.now())
        second = generator.from_current_context(low, SensorSnapshot(), clock.now())

        assert first[0].id != second[0].id

    def test_history_needs_ten_samples(self, clock):
        history = [make_context(device_state=DeviceState(battery=100 - n * 5)) for n in range(9)]
        assert InsightGenerator().from_history(history, clock.now()) == []

    def test_battery_drain_pattern(self, clock):
        history = [make_context(device_state=DeviceState(battery=90 - n * 3)) for n in range(10)]

        insights = InsightGenerator().from_history(history, clock.now())

        assert titles(insights) == ["High Battery Drain Detected"]
        assert "27%" in insights[0].description

    def test_moving_user_has_no_stable_location(self, clock):
        history = [
            make_context(current_location=CurrentLocation(latitude=40.0 + n * 0.01, longitude=-74.0))
            for n in range(10)
        ]
        assert InsightGenerator().from_history(history, clock.now()) == []


class TestRecommendationsAndPredictions:

    @pytest.mark.asyncio
    async def test_recommendations_come_from_parsed_actions(self, context_engine, backends):
        for backend in backends.values():
            backend.text = "Try these.\n\nSuggestions: Stretch, Hydrate"

        actions = await context_engine.generate_proactive_recommendations(make_context())

        assert actions == ["Stretch", "Hydrate"]

    @pytest.mark.asyncio
    async def test_no_actions_means_no_recommendations(self, context_engine):
        assert await context_engine.generate_proactive_recommendations(make_context()) == []

    @pytest.mark.asyncio
    async def test_prediction_without_history(self, context_engine):
        prediction = await context_engine.predict_next_context()

        assert prediction.confidence == pytest.approx(0.1)
        assert prediction.reasoning == "Prediction failed due to error"
        assert prediction.predicted_context == {}

    @pytest.mark.asyncio
    async def test_prediction_projects_battery_and_time(self, context_engine, sensor_manager):
        await sensor_manager.start_collection()
        await context_engine.update_context(sensor_manager.get_current_data())

        prediction = await context_engine.predict_next_context(30)
        assert prediction.predicted_context["device_state"]["battery"] == pytest.approx(82.5)
        assert prediction.predicted_context["time_of_day"] == "afternoon"
        assert prediction.confidence == pytest.approx(0.7)
        assert prediction.reasoning == DEFAULT_REASONING

        later = await context_engine.predict_next_context(300)
        assert later.predicted_context["device_state"]["battery"] == pytest.approx(60)
        assert later.predicted_context["time_of_day"] == "evening"

    def test_predict_time_of_day_wraps_midnight(self, context_engine):
        assert context_engine.predict_time_of_day(600) == TimeOfDay.LATE_NIGHT


class TestSummary:

    def test_empty_summary(self, context_engine):
        assert context_engine.get_context_summary() == "No context available"

    @pytest.mark.asyncio
    async def test_summary_of_latest_context(self, context_engine, sensor_manager, sensor_source):
        sensor_source.battery = 0.15
        await sensor_manager.start_collection()
        await context_engine.analyze_current_context()

        assert context_engine.get_context_summary() == "\n".join([
            "Current Context Summary:",
            "- Time: afternoon",
            "- Motion: unknown",
            "- Battery: 15%",
            "- Connectivity: wifi",
            "- Recent Activity: location_tracked",
            "- High Priority Alerts: 1",
            "- Alert: Low Battery Detected",
        ])
