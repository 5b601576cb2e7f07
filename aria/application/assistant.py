from typing import Any, Dict, Optional
import structlog

from aria.domain.context.context_engine import ContextEngine
from aria.domain.orchestration.autonomous_orchestrator import AutonomousOrchestrator
from aria.domain.orchestration.scheduling import Clock
from aria.domain.reasoning.reasoning_engine import ReasoningEngine
from aria.domain.sensors.sensor_manager import SensorManager
from aria.infrastructure.backends.base import ModelBackend
from aria.infrastructure.config.settings import Settings
from aria.infrastructure.observability.logging import setup_logging, metrics
from aria.infrastructure.platform.background import BackgroundScheduler
from aria.infrastructure.platform.notifications import NotificationSink, InMemoryNotificationSink
from aria.infrastructure.platform.sensors import SensorSource

logger = structlog.get_logger(__name__)


class AssistantApplication:
    """Owns one instance of every engine and wires them together"""

    def __init__(
        self,
        sensor_source: SensorSource,
        backends: Dict[str, ModelBackend],
        notification_sink: Optional[NotificationSink] = None,
        background_scheduler: Optional[BackgroundScheduler] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None
    ):
        self.settings = settings or Settings()
        self.clock = clock or Clock()
        self.background_scheduler = background_scheduler

        self.sensor_manager = SensorManager(sensor_source)
        self.reasoning_engine = ReasoningEngine(backends, self.settings, self.clock)
        self.context_engine = ContextEngine(
            self.sensor_manager,
            self.reasoning_engine,
            self.settings,
            self.clock
        )
        self.orchestrator = AutonomousOrchestrator(
            self.context_engine,
            self.reasoning_engine,
            notification_sink or InMemoryNotificationSink(),
            self.settings,
            self.clock
        )
        self.is_started = False

    async def start(self, configure_logging: bool = True) -> None:
        """Bring up sensors, context monitoring and the orchestrator"""

        if self.is_started:
            return

        if configure_logging:
            setup_logging(
                log_level=self.settings.log_level,
                log_format=self.settings.log_format,
                service_name=self.settings.service_name
            )

        await self.sensor_manager.start_collection()
        self.context_engine.start_monitoring()
        await self.orchestrator.setup(self.background_scheduler)
        self.is_started = True

        logger.info("Assistant started", backends=list(self.reasoning_engine.backends))

    async def stop(self) -> None:
        """Stop every loop; in-flight model calls finish and are discarded"""

        if not self.is_started:
            return

        await self.orchestrator.stop_autonomous_mode()
        self.context_engine.stop_monitoring()
        self.sensor_manager.stop_collection()
        self.is_started = False

        logger.info("Assistant stopped")

    def get_status(self) -> Dict[str, Any]:
        return {
            "started": self.is_started,
            "collecting_sensors": self.sensor_manager.is_collecting,
            "monitoring_context": self.context_engine.is_monitoring,
            "orchestrator": self.orchestrator.get_system_status(),
            "metrics": metrics.get_metrics_summary(),
        }
