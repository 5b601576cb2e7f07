from typing import List, Sequence
import uuid
from datetime import datetime

from aria.domain.models.assistant_state import (
    Context, Insight, InsightType, Priority, SensorSnapshot, TimeOfDay
)
from aria.domain.sensors.sensor_manager import classify_motion

LOW_BATTERY_PERCENT = 20
PATTERN_WINDOW = 10
BATTERY_DRAIN_THRESHOLD = 20
MIN_LOCATION_SAMPLES = 5


def insight_id(rule: str, now: datetime) -> str:
    """Rule name, epoch milliseconds and a random suffix"""
    return f"{rule}_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"


class InsightGenerator:
    """Rule-based insights over the current context and its recent history"""

    def generate(
        self,
        context: Context,
        sensor_data: SensorSnapshot,
        history: Sequence[Context],
        now: datetime
    ) -> List[Insight]:
        """Current-context rules followed by history patterns"""

        insights = self.from_current_context(context, sensor_data, now)
        insights.extend(self.from_history(history, now))
        return insights

    def from_current_context(self, context: Context, sensor_data: SensorSnapshot, now: datetime) -> List[Insight]:
        insights = []
        battery = context.device_state.battery

        if battery < LOW_BATTERY_PERCENT:
            insights.append(Insight(
                id=insight_id("battery_low", now),
                type=InsightType.ALERT,
                priority=Priority.HIGH,
                title="Low Battery Detected",
                description=f"Device battery is at {battery:g}%. Consider charging soon.",
                confidence=0.95,
                timestamp=now,
                actions=["Find nearest charging location", "Enable battery saver mode"],
                context_sources=["device_state"]
            ))

        motion = classify_motion(sensor_data.accelerometer)
        if motion == "stationary" and context.time_of_day == TimeOfDay.AFTERNOON:
            insights.append(Insight(
                id=insight_id("stationary_afternoon", now),
                type=InsightType.RECOMMENDATION,
                priority=Priority.MEDIUM,
                title="Afternoon Activity Suggestion",
                description="You have been stationary for a while during the afternoon. "
                            "Consider taking a short walk or stretch break.",
                confidence=0.7,
                timestamp=now,
                actions=["Take a 5-minute walk", "Do desk stretches", "Set movement reminder"],
                context_sources=["motion", "time"]
            ))

        if sensor_data.location and context.time_of_day == TimeOfDay.EVENING:
            loc = sensor_data.location
            insights.append(Insight(
                id=insight_id("location_evening", now),
                type=InsightType.OBSERVATION,
                priority=Priority.LOW,
                title="Evening Location Check",
                description=f"Currently located at coordinates {loc.latitude:.4f}, "
                            f"{loc.longitude:.4f} in the evening.",
                confidence=0.9,
                timestamp=now,
                context_sources=["location", "time"]
            ))

        if context.device_state.connectivity == "offline":
            insights.append(Insight(
                id=insight_id("offline", now),
                type=InsightType.ALERT,
                priority=Priority.MEDIUM,
                title="Device Offline",
                description="No network connectivity detected. Some features may be limited.",
                confidence=0.95,
                timestamp=now,
                actions=["Check WiFi settings", "Enable mobile data", "Find network"],
                context_sources=["connectivity"]
            ))

        return insights

    def from_history(self, history: Sequence[Context], now: datetime) -> List[Insight]:
        """Battery drain and location stability across the last samples"""

        insights: List[Insight] = []
        if len(history) < PATTERN_WINDOW:
            return insights

        recent = list(history)[-PATTERN_WINDOW:]

        drain = recent[0].device_state.battery - recent[-1].device_state.battery
        if drain > BATTERY_DRAIN_THRESHOLD:
            insights.append(Insight(
                id=insight_id("battery_drain_pattern", now),
                type=InsightType.OBSERVATION,
                priority=Priority.MEDIUM,
                title="High Battery Drain Detected",
                description=f"Battery drained {drain:g}% in recent activity. "
                            "Consider checking for power-hungry apps.",
                confidence=0.8,
                timestamp=now,
                actions=["Check battery usage", "Close background apps", "Enable power saving"],
                context_sources=["battery_history"]
            ))

        positions = [
            (c.current_location.latitude, c.current_location.longitude)
            for c in recent if c.current_location is not None
        ]
        if len(positions) >= MIN_LOCATION_SAMPLES and len(set(positions)) == 1:
            insights.append(Insight(
                id=insight_id("location_stable", now),
                type=InsightType.OBSERVATION,
                priority=Priority.LOW,
                title="Stable Location Detected",
                description="You have been in the same location for an extended period.",
                confidence=0.9,
                timestamp=now,
                context_sources=["location_history"]
            ))

        return insights
