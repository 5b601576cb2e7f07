from typing import List, Optional
import asyncio
import structlog
from datetime import timedelta

from aria.domain.models.assistant_state import (
    Context, ContextPrediction, CurrentLocation, DeviceState, Insight, Priority,
    ReasoningInput, SensorSnapshot, TimeOfDay, UserPreferences, VisionAnalysis, AudioData
)
from aria.domain.orchestration.scheduling import Clock, PeriodicJob
from aria.domain.reasoning.reasoning_engine import ReasoningEngine
from aria.domain.sensors.sensor_manager import SensorManager, classify_motion, classify_orientation
from aria.infrastructure.config.settings import Settings
from aria.infrastructure.observability.logging import assistant_logger, metrics
from .insight_generator import InsightGenerator
from .time_of_day import time_of_day_for

logger = structlog.get_logger(__name__)


class ContextEngine:
    """Derives situational context from sensors and mines it for insights"""

    def __init__(
        self,
        sensor_manager: SensorManager,
        reasoning_engine: ReasoningEngine,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        insight_generator: Optional[InsightGenerator] = None
    ):
        self.sensor_manager = sensor_manager
        self.reasoning_engine = reasoning_engine
        self.settings = settings or Settings()
        self.clock = clock or Clock()
        self.insight_generator = insight_generator or InsightGenerator()
        self.user_preferences = UserPreferences(preferred_model=self.settings.preferred_model)

        self.context_history: List[Context] = []
        self.insights: List[Insight] = []
        self.is_analyzing = False
        self._history_lock = asyncio.Lock()
        self._monitor = PeriodicJob(
            "context_monitor",
            self.settings.context_monitor_interval_seconds,
            self.analyze_current_context,
            clock=self.clock
        )

    # ------------------------------------------------------------------
    # Monitoring lifecycle
    # ------------------------------------------------------------------

    def start_monitoring(self) -> None:
        """Re-run context analysis on a fixed cadence"""
        self._monitor.start()

    def stop_monitoring(self) -> None:
        self._monitor.stop()

    @property
    def is_monitoring(self) -> bool:
        return self._monitor.is_running

    # ------------------------------------------------------------------
    # Context derivation
    # ------------------------------------------------------------------

    async def update_context(
        self,
        sensor_data: Optional[SensorSnapshot] = None,
        vision_data: Optional[VisionAnalysis] = None,
        audio_data: Optional[AudioData] = None
    ) -> Context:
        """Derive a context from the given inputs and append it to history"""

        now = self.clock.now()

        current_location = None
        if sensor_data and sensor_data.location:
            current_location = CurrentLocation(
                latitude=sensor_data.location.latitude,
                longitude=sensor_data.location.longitude,
                address=sensor_data.location.address
            )

        device_info = sensor_data.device_info if sensor_data else None
        device_state = DeviceState(
            battery=device_info.battery if device_info else 100,
            connectivity=device_info.connectivity if device_info else "unknown",
            brightness=device_info.brightness if device_info else None
        )

        context = Context(
            current_location=current_location,
            time_of_day=time_of_day_for(now),
            recent_activity=self._extract_recent_activity(sensor_data, vision_data, audio_data),
            device_state=device_state,
            user_preferences=self.user_preferences,
            created_at=now
        )

        async with self._history_lock:
            self.context_history.append(context)
            limit = self.settings.context_history_limit
            if len(self.context_history) > limit:
                self.context_history = self.context_history[-limit:]

        return context

    def _extract_recent_activity(
        self,
        sensor_data: Optional[SensorSnapshot],
        vision_data: Optional[VisionAnalysis],
        audio_data: Optional[AudioData]
    ) -> List[str]:
        activities = []

        if sensor_data and sensor_data.accelerometer:
            motion = classify_motion(sensor_data.accelerometer)
            if motion != "unknown":
                activities.append(f"user_{motion}")
            activities.append(f"device_{classify_orientation(sensor_data.accelerometer)}")

        if vision_data:
            activities.append("camera_used")
            if vision_data.objects:
                activities.append(f"observed_{vision_data.objects[0]}")

        if audio_data:
            activities.append("voice_interaction")
            if audio_data.transcription:
                activities.append("speech_detected")

        if sensor_data and sensor_data.location:
            activities.append("location_tracked")

        return activities[-self.settings.recent_activity_limit:]

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    async def analyze_current_context(self) -> List[Insight]:
        """Generate insights for the current readings; returns only the new ones.

        A pass already in progress short-circuits to the retained set.
        """

        if self.is_analyzing:
            return list(self.insights)

        self.is_analyzing = True
        try:
            sensor_data = self.sensor_manager.get_current_data()
            context = await self.update_context(sensor_data)

            new_insights = self.insight_generator.generate(
                context, sensor_data, self.context_history, self.clock.now()
            )
            self.record_insights(new_insights)

            assistant_logger.log_insights(
                generated=len(new_insights),
                retained=len(self.insights),
                priorities=[i.priority.value for i in new_insights]
            )
            metrics.increment_counter("insights.generated", len(new_insights))

            return new_insights

        except Exception as e:
            logger.error("Context analysis error", error=str(e))
            return []
        finally:
            self.is_analyzing = False

    def record_insights(self, insights: List[Insight]) -> None:
        """Add insights, then keep the newest within the age and size bounds"""

        self.insights.extend(insights)

        cutoff = self.clock.now() - timedelta(seconds=self.settings.insight_ttl_seconds)
        fresh = [i for i in self.insights if i.timestamp > cutoff]
        fresh.sort(key=lambda i: i.timestamp, reverse=True)
        self.insights = fresh[:self.settings.insight_limit]

    async def generate_proactive_recommendations(
        self,
        context: Context,
        sensor_data: Optional[SensorSnapshot] = None
    ) -> List[str]:
        """Ask the reasoning engine for actionable suggestions; empty on failure"""

        try:
            sensor_data = sensor_data or SensorSnapshot()
            query = (
                "Based on the current context and sensor data, provide 3 proactive recommendations for the user:\n"
                "\n"
                "Context:\n"
                f"- Time: {context.time_of_day.value}\n"
                f"- Location: {'Available' if context.current_location else 'Unknown'}\n"
                f"- Recent Activity: {', '.join(context.recent_activity)}\n"
                f"- Battery: {context.device_state.battery:g}%\n"
                f"- Motion: {classify_motion(sensor_data.accelerometer)}\n"
                f"- Device Orientation: {classify_orientation(sensor_data.accelerometer)}\n"
                "\n"
                "Provide practical, actionable recommendations based on this context."
            )

            response = await self.reasoning_engine.process_query(ReasoningInput(
                query=query,
                context=context,
                sensor_data=sensor_data
            ))
            return response.actions or []

        except Exception as e:
            logger.error("Proactive recommendations error", error=str(e))
            return []

    async def predict_next_context(self, minutes_ahead: int = 30) -> ContextPrediction:
        """Model commentary plus closed-form battery and time-of-day projection"""

        try:
            if not self.context_history:
                raise ValueError("No context history to predict from")

            current = self.context_history[-1]
            patterns = "".join(
                f"\n{index}. Time: {c.time_of_day.value}, Activity: {', '.join(c.recent_activity)}, "
                f"Battery: {c.device_state.battery:g}%\n"
                for index, c in enumerate(self.context_history[-5:], start=1)
            )
            query = (
                "Based on the context history and current patterns, predict what the user's context "
                f"might be in {minutes_ahead} minutes:\n\nRecent patterns:\n{patterns}\n"
                "Provide a prediction with reasoning."
            )

            response = await self.reasoning_engine.process_query(ReasoningInput(query=query, context=current))

            drain = (minutes_ahead / 60) * self.settings.battery_drain_percent_per_hour
            predicted_battery = max(0, current.device_state.battery - drain)

            return ContextPrediction(
                predicted_context={
                    "device_state": current.device_state.model_copy(update={"battery": predicted_battery}).model_dump(),
                    "time_of_day": self.predict_time_of_day(minutes_ahead).value,
                },
                confidence=response.confidence,
                reasoning=response.reasoning
            )

        except Exception as e:
            logger.error("Context prediction error", error=str(e))
            return ContextPrediction(
                predicted_context={},
                confidence=0.1,
                reasoning="Prediction failed due to error"
            )

    def predict_time_of_day(self, minutes_ahead: int) -> TimeOfDay:
        return time_of_day_for(self.clock.now() + timedelta(minutes=minutes_ahead))

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------

    def get_current_insights(self) -> List[Insight]:
        return list(self.insights)

    def get_context_history(self) -> List[Context]:
        return list(self.context_history)

    def get_latest_context(self) -> Optional[Context]:
        return self.context_history[-1] if self.context_history else None

    def get_high_priority_insights(self) -> List[Insight]:
        return [i for i in self.insights if i.priority in (Priority.HIGH, Priority.URGENT)]

    def has_recent_activity(self, activity: str, minutes_back: int = 30) -> bool:
        """True if a context from the last minutes carries the activity tag"""

        cutoff = self.clock.now() - timedelta(minutes=minutes_back)
        return any(
            activity in c.recent_activity
            for c in self.context_history
            if c.created_at >= cutoff
        )

    def get_context_summary(self) -> str:
        """Digest of the latest context, motion and top alert"""

        current = self.get_latest_context()
        if current is None:
            return "No context available"

        alerts = self.get_high_priority_insights()
        lines = [
            "Current Context Summary:",
            f"- Time: {current.time_of_day.value}",
            f"- Motion: {self.sensor_manager.analyze_motion_pattern()}",
            f"- Battery: {current.device_state.battery:g}%",
            f"- Connectivity: {current.device_state.connectivity}",
            f"- Recent Activity: {', '.join(current.recent_activity[-3:])}",
            f"- High Priority Alerts: {len(alerts)}",
        ]
        if alerts:
            lines.append(f"- Alert: {alerts[0].title}")

        return "\n".join(lines)
