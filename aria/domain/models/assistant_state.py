from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from enum import Enum


class TimeOfDay(str, Enum):
    """Hour-of-day bucket"""
    LATE_NIGHT = "late_night"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class Priority(str, Enum):
    """Insight and task priority levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class InsightType(str, Enum):
    """Kinds of generated insight"""
    OBSERVATION = "observation"
    PREDICTION = "prediction"
    RECOMMENDATION = "recommendation"
    ALERT = "alert"


class TaskType(str, Enum):
    """Autonomous task kinds"""
    OBSERVATION = "observation"
    ANALYSIS = "analysis"
    REMINDER = "reminder"
    ACTION = "action"


class TaskStatus(str, Enum):
    """Autonomous task lifecycle status"""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Directed edges of the task state machine; anything missing is terminal.
TASK_TRANSITIONS: Dict[TaskStatus, set] = {
    TaskStatus.PENDING: {TaskStatus.ACTIVE, TaskStatus.CANCELLED},
    TaskStatus.ACTIVE: {TaskStatus.COMPLETED, TaskStatus.FAILED},
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Check whether a task may move from one status to another"""
    return target in TASK_TRANSITIONS.get(current, set())


# ---------------------------------------------------------------------------
# Sensor readings
# ---------------------------------------------------------------------------

class Vector3Reading(BaseModel):
    """Three-axis motion sample (accelerometer, gyroscope, magnetometer)"""
    x: float
    y: float
    z: float
    timestamp: datetime = Field(default_factory=datetime.now)


class LocationReading(BaseModel):
    """Location fix"""
    latitude: float
    longitude: float
    accuracy: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.now)
    address: Optional[str] = None


class DeviceInfoReading(BaseModel):
    """Device state probe"""
    battery: int = Field(description="Battery level in percent")
    brightness: Optional[int] = Field(None, description="Screen brightness in percent")
    orientation: str = "unknown"
    connectivity: str = "unknown"


class SensorSnapshot(BaseModel):
    """Latest reading from every sensor; a missing field means the sensor is not reporting yet"""
    accelerometer: Optional[Vector3Reading] = None
    gyroscope: Optional[Vector3Reading] = None
    magnetometer: Optional[Vector3Reading] = None
    location: Optional[LocationReading] = None
    device_info: Optional[DeviceInfoReading] = None


class VisionAnalysis(BaseModel):
    """Result handed over by the vision pipeline"""
    description: str
    objects: List[str] = Field(default_factory=list)
    text: Optional[str] = None
    emotions: Optional[List[str]] = None
    scene: str = ""
    confidence: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.now)


class AudioData(BaseModel):
    """Result handed over by the speech pipeline"""
    transcription: str
    confidence: float = 0.0
    duration: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.now)
    language: Optional[str] = None


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

class CurrentLocation(BaseModel):
    latitude: float
    longitude: float
    address: Optional[str] = None


class DeviceState(BaseModel):
    battery: float = 100
    connectivity: str = "unknown"
    brightness: Optional[int] = None


class UserPreferences(BaseModel):
    preferred_model: str = "openai"
    voice_enabled: bool = True
    camera_enabled: bool = True
    location_enabled: bool = True


class Context(BaseModel):
    """Point-in-time situational record, never mutated once created"""
    model_config = {"frozen": True}

    current_location: Optional[CurrentLocation] = None
    time_of_day: TimeOfDay
    recent_activity: List[str] = Field(default_factory=list)
    device_state: DeviceState = Field(default_factory=DeviceState)
    user_preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: datetime = Field(default_factory=datetime.now)


class ContextPrediction(BaseModel):
    """Projected context some minutes ahead"""
    predicted_context: Dict[str, Any] = Field(default_factory=dict)
    confidence: float
    reasoning: str


class Insight(BaseModel):
    """Observation, prediction, recommendation or alert about the user's context"""
    id: str = Field(description="Unique insight identifier")
    type: InsightType
    priority: Priority
    title: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=datetime.now)
    actions: Optional[List[str]] = None
    context_sources: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Reasoning
# ---------------------------------------------------------------------------

class ModelCapabilities(BaseModel):
    """Capability profile of one model backend"""
    reasoning: int = Field(ge=0, le=10)
    vision: bool = False
    code_generation: int = Field(ge=0, le=10)
    real_time_data: bool = False
    context_window: int = Field(gt=0)


class ConversationTurn(BaseModel):
    role: str = Field(description="user or assistant")
    content: str


class ReasoningInput(BaseModel):
    """Everything the reasoning engine may use to answer a query"""
    query: str
    context: Context
    sensor_data: Optional[SensorSnapshot] = None
    vision_data: Optional[VisionAnalysis] = None
    audio_data: Optional[AudioData] = None
    conversation_history: List[ConversationTurn] = Field(default_factory=list)
    image: Optional[str] = Field(None, description="Base64 encoded image payload")


class AIResponse(BaseModel):
    """Structured answer produced by one reasoning invocation"""
    model_config = {"frozen": True}

    content: str
    reasoning: str
    actions: Optional[List[str]] = None
    confidence: float
    model: str = Field(description="Backend identifier, 'consensus' or 'error'")
    timestamp: datetime = Field(default_factory=datetime.now)
    context_used: List[str] = Field(default_factory=list)

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: float) -> float:
        return max(0.1, min(1.0, value))


# ---------------------------------------------------------------------------
# Autonomous tasks and notifications
# ---------------------------------------------------------------------------

class AutonomousTask(BaseModel):
    """Unit of proactive work; status is the only field changed after creation"""
    id: str = Field(description="Unique task identifier")
    type: TaskType
    title: str
    description: str
    scheduled_for: Optional[datetime] = None
    context: Optional[Context] = Field(None, description="Context snapshot at creation")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: Priority = Field(default=Priority.MEDIUM)
    created_at: datetime = Field(default_factory=datetime.now)

    def is_due(self, now: datetime) -> bool:
        """Pending with a scheduled time that has elapsed"""
        return (
            self.status == TaskStatus.PENDING
            and self.scheduled_for is not None
            and self.scheduled_for <= now
        )


class NotificationAction(BaseModel):
    id: str
    title: str


class Notification(BaseModel):
    """Payload handed to the notification sink"""
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: str = Field(default="normal", description="low, normal or high")
    actions: Optional[List[NotificationAction]] = None
    created_at: datetime = Field(default_factory=datetime.now)
