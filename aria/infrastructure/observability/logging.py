import structlog
import logging
import sys
from typing import Dict, Any, Optional, List
from datetime import datetime
import os


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "aria-assistant"
) -> None:
    """Setup structured logging configuration"""

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO)
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
        version=os.getenv("SERVICE_VERSION", "unknown")
    )


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to all log entries"""

    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now().isoformat()

    # Correlates everything logged during one analysis tick
    tick_id = structlog.contextvars.get_contextvars().get("tick_id")
    if tick_id:
        event_dict["tick_id"] = tick_id

    return event_dict


class AssistantLogger:
    """Specialized logger for assistant domain events"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_model_selection(self, selected: str, scores: Dict[str, int], cues: List[str]):
        """Log which backend won the scoring round"""

        self.logger.info(
            "model_selection",
            selected=selected,
            scores=scores,
            cues=cues
        )

    def log_backend_call(
        self,
        backend_id: str,
        duration_ms: float,
        success: bool = True,
        error: Optional[str] = None
    ):
        """Log a single backend invocation"""

        self.logger.info(
            "backend_call",
            backend_id=backend_id,
            duration_ms=round(duration_ms, 2),
            success=success,
            error=error
        )

    def log_task_transition(
        self,
        task_id: str,
        from_status: str,
        to_status: str,
        accepted: bool = True
    ):
        """Log task state machine transitions"""

        log = self.logger.info if accepted else self.logger.warning
        log(
            "task_transition",
            task_id=task_id,
            from_status=from_status,
            to_status=to_status,
            accepted=accepted
        )

    def log_insights(self, generated: int, retained: int, priorities: Optional[List[str]] = None):
        """Log an insight generation pass"""

        self.logger.info(
            "insights_generated",
            generated=generated,
            retained=retained,
            priorities=priorities or []
        )

    def log_notification(self, title: str, priority: str, scheduled_in: Optional[int] = None):
        """Log a dispatched notification"""

        self.logger.info(
            "notification",
            title=title,
            priority=priority,
            scheduled_in=scheduled_in
        )


# Global logger instance
assistant_logger = AssistantLogger("aria")


class MetricsCollector:
    """Collect and export metrics"""

    def __init__(self):
        self.metrics: Dict[str, Any] = {}

    def record_latency(self, operation: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        """Record operation latency"""

        key = f"latency.{operation}"
        if key not in self.metrics:
            self.metrics[key] = {
                "count": 0,
                "sum": 0,
                "min": float('inf'),
                "max": 0
            }

        self.metrics[key]["count"] += 1
        self.metrics[key]["sum"] += duration_ms
        self.metrics[key]["min"] = min(self.metrics[key]["min"], duration_ms)
        self.metrics[key]["max"] = max(self.metrics[key]["max"], duration_ms)

        assistant_logger.logger.debug(
            "metric",
            metric_type="latency",
            operation=operation,
            duration_ms=duration_ms,
            tags=tags or {}
        )

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Increment a counter metric"""

        if name not in self.metrics:
            self.metrics[name] = 0
        self.metrics[name] += value

        assistant_logger.logger.debug(
            "metric",
            metric_type="counter",
            name=name,
            value=value,
            tags=tags or {}
        )

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get summary of all metrics"""

        summary = {}
        for key, value in self.metrics.items():
            if isinstance(value, dict) and "count" in value:
                summary[key] = {
                    "count": value["count"],
                    "avg": value["sum"] / value["count"] if value["count"] > 0 else 0,
                    "min": value["min"] if value["min"] != float('inf') else 0,
                    "max": value["max"]
                }
            else:
                summary[key] = value

        return summary

    def reset(self):
        """Drop every recorded metric"""

        self.metrics.clear()


# Global metrics collector
metrics = MetricsCollector()
