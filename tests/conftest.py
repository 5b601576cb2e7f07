"""
Shared fixtures for the assistant core tests.

Every engine is built fresh per test from scripted collaborators:
- ScriptedBackend: returns canned text or raises a backend error
- FakeSensorSource: records subscriptions and lets tests push samples
- ManualClock: fixed wall clock that advances only when told to
"""

from typing import Callable, Dict, List, Optional
import asyncio
import pytest
from datetime import datetime, timedelta

from aria.domain.context.context_engine import ContextEngine
from aria.domain.models.assistant_state import Context, ReasoningInput, TimeOfDay
from aria.domain.orchestration.autonomous_orchestrator import AutonomousOrchestrator
from aria.domain.orchestration.scheduling import Clock
from aria.domain.reasoning.reasoning_engine import ReasoningEngine
from aria.domain.sensors.sensor_manager import SensorManager
from aria.infrastructure.backends.base import ModelBackend, BackendRequest
from aria.infrastructure.config.settings import Settings
from aria.infrastructure.platform.notifications import InMemoryNotificationSink
from aria.infrastructure.platform.sensors import SensorSource, SensorKind, Subscription, NetworkState


class ManualClock(Clock):
    def __init__(self, start: datetime):
        self.current = start
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)

    async def sleep(self, seconds: float) -> None:
        # Periodic loops park here until cancelled; tests drive ticks explicitly
        self.sleeps.append(seconds)
        await asyncio.Event().wait()


class ScriptedBackend(ModelBackend):
    def __init__(self, backend_id: str, text: str = "", error: Optional[Exception] = None):
        super().__init__(backend_id)
        self.text = text or f"Response from {backend_id}"
        self.error = error
        self.requests: List[BackendRequest] = []

    async def invoke(self, request: BackendRequest) -> str:
        self.requests.append(request)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.text


class FakeSubscription(Subscription):
    def __init__(self, source: "FakeSensorSource", key: str):
        self.source = source
        self.key = key
        self.removed = False

    def remove(self) -> None:
        self.removed = True
        self.source.callbacks.pop(self.key, None)


class FakeSensorSource(SensorSource):
    def __init__(
        self,
        denied: Optional[set] = None,
        failing: Optional[set] = None,
        battery: float = 0.85,
        network: Optional[NetworkState] = None,
        position: Optional[Dict[str, float]] = None,
        address: Optional[str] = "1 Market St San Francisco CA"
    ):
        self.denied = denied or set()
        self.failing = failing or set()
        self.battery = battery
        self.network = network or NetworkState(is_connected=True, type="wifi")
        self.position = position or {"latitude": 37.7749, "longitude": -122.4194, "accuracy": 12.0}
        self.address = address
        self.callbacks: Dict[str, Callable] = {}
        self.intervals: Dict[str, int] = {}
        self.subscriptions: List[FakeSubscription] = []

    def _subscription(self, key: str, callback: Callable) -> FakeSubscription:
        self.callbacks[key] = callback
        subscription = FakeSubscription(self, key)
        self.subscriptions.append(subscription)
        return subscription

    async def request_permission(self, kind: SensorKind) -> bool:
        return kind not in self.denied

    def subscribe(self, kind, callback, interval_ms):
        if kind in self.failing:
            raise RuntimeError(f"{kind.value} unavailable")
        self.intervals[kind.value] = interval_ms
        return self._subscription(kind.value, callback)

    async def get_current_position(self):
        return dict(self.position)

    async def watch_position(self, callback, time_interval_ms, distance_interval_m):
        self.intervals["location"] = time_interval_ms
        return self._subscription("location", callback)

    async def reverse_geocode(self, latitude, longitude):
        return self.address

    async def get_battery_level(self):
        return self.battery

    async def get_network_state(self):
        return self.network

    async def get_brightness(self):
        raise NotImplementedError("no brightness on this platform")

    def add_battery_listener(self, callback):
        return self._subscription("battery", callback)

    def push(self, key: str, sample):
        self.callbacks[key](sample)


def make_context(**overrides) -> Context:
    values = {"time_of_day": TimeOfDay.MORNING, "recent_activity": ["user_walking"]}
    values.update(overrides)
    return Context(**values)


def make_input(query: str, **overrides) -> ReasoningInput:
    context = overrides.pop("context", None) or make_context()
    return ReasoningInput(query=query, context=context, **overrides)


@pytest.fixture
def settings():
    return Settings(log_format="console")


@pytest.fixture
def clock():
    return ManualClock(datetime(2026, 10, 18, 14, 0, 0))


@pytest.fixture
def backends():
    return {
        "openai": ScriptedBackend("openai"),
        "anthropic": ScriptedBackend("anthropic"),
        "grok": ScriptedBackend("grok"),
    }


@pytest.fixture
def reasoning_engine(backends, settings, clock):
    return ReasoningEngine(backends, settings, clock)


@pytest.fixture
def sensor_source():
    return FakeSensorSource()


@pytest.fixture
def sensor_manager(sensor_source):
    return SensorManager(sensor_source)


@pytest.fixture
def context_engine(sensor_manager, reasoning_engine, settings, clock):
    return ContextEngine(sensor_manager, reasoning_engine, settings, clock)


@pytest.fixture
def notification_sink():
    return InMemoryNotificationSink()


@pytest.fixture
def orchestrator(context_engine, reasoning_engine, notification_sink, settings, clock):
    return AutonomousOrchestrator(context_engine, reasoning_engine, notification_sink, settings, clock)
