from typing import Optional
from datetime import datetime

from aria.domain.models.assistant_state import Context, SensorSnapshot
from aria.domain.context.time_of_day import time_of_day_for


CAPABILITIES_SECTION = """CAPABILITIES:
- Advanced logical reasoning and problem solving
- Real-time sensor data analysis
- Computer vision and image understanding
- Voice processing and natural language understanding
- Contextual awareness and memory
- Autonomous task execution
- Multi-modal data synthesis"""

RULES_SECTION = """RULES:
1. Always provide reasoning for your responses
2. Use available sensor and contextual data to inform decisions
3. Be proactive in suggesting actions or observations
4. Consider user's safety and privacy
5. Adapt your communication style to the context
6. When possible, predict user needs based on patterns
7. Provide confidence levels for your assessments"""

RESPONSE_FORMAT_SECTION = """RESPONSE FORMAT:
Always structure responses with:
- Main response content
- Reasoning explanation
- Suggested actions (if any)
- Confidence assessment"""


def build_system_prompt(
    context: Context,
    sensor_data: Optional[SensorSnapshot] = None,
    now: Optional[datetime] = None,
    assistant_name: str = "ARIA"
) -> str:
    """System prompt shared by every backend so their answers stay comparable"""

    now = now or datetime.now()
    location = context.current_location
    location_text = f"{location.latitude}, {location.longitude}" if location else "Unknown"

    lines = [
        f"You are {assistant_name} (Advanced Reasoning Intelligence Assistant), an autonomous AI assistant "
        "with access to real-time device sensors, vision, and contextual data. You have advanced reasoning "
        "capabilities and can take autonomous actions.",
        "",
        "CURRENT CONTEXT:",
        f"- Time: {now.strftime('%Y-%m-%d %H:%M:%S')} ({time_of_day_for(now).value})",
        f"- Location: {location_text}",
        f"- Device Battery: {context.device_state.battery}%",
        f"- Connectivity: {context.device_state.connectivity}",
        f"- Recent Activity: {', '.join(context.recent_activity) or 'None'}",
        "",
        CAPABILITIES_SECTION,
        "",
        "SENSOR DATA AVAILABLE:",
    ]

    if sensor_data and sensor_data.accelerometer:
        accel = sensor_data.accelerometer
        lines.append(f"- Motion: X:{accel.x:.2f}, Y:{accel.y:.2f}, Z:{accel.z:.2f}")

    if sensor_data and sensor_data.location:
        loc = sensor_data.location
        lines.append(f"- Precise Location: {loc.latitude}, {loc.longitude} (±{loc.accuracy}m)")

    if sensor_data and sensor_data.device_info:
        info = sensor_data.device_info
        lines.append(f"- Device State: Battery {info.battery}%, Orientation: {info.orientation}")

    lines.extend(["", RULES_SECTION, "", RESPONSE_FORMAT_SECTION])

    return "\n".join(lines)
