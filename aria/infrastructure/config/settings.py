from typing import Dict
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aria.domain.models.assistant_state import ModelCapabilities


def default_model_capabilities() -> Dict[str, ModelCapabilities]:
    """Capability table for the stock backends, in declaration order"""
    return {
        "openai": ModelCapabilities(
            reasoning=9, vision=True, code_generation=8,
            real_time_data=False, context_window=128000
        ),
        "anthropic": ModelCapabilities(
            reasoning=10, vision=True, code_generation=9,
            real_time_data=False, context_window=200000
        ),
        "grok": ModelCapabilities(
            reasoning=8, vision=True, code_generation=7,
            real_time_data=True, context_window=131072
        ),
    }


class Settings(BaseSettings):
    """Assistant settings, overridable through ARIA_* environment variables."""

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "aria-assistant"

    # Reasoning
    assistant_name: str = "ARIA"
    preferred_model: str = "openai"
    model_capabilities: Dict[str, ModelCapabilities] = Field(default_factory=default_model_capabilities)
    large_context_threshold: int = 50000  # characters of serialized input
    backend_timeout_seconds: float = 30.0

    # Context engine
    context_monitor_interval_seconds: float = 30
    context_history_limit: int = 100
    recent_activity_limit: int = 10
    insight_ttl_seconds: int = 3600
    insight_limit: int = 50
    battery_drain_percent_per_hour: float = 5.0

    # Autonomous orchestrator
    autonomous_interval_seconds: float = 300
    background_interval_seconds: int = 900
    daily_summary_hour: int = 20
    reminder_delay_seconds: int = 1800
    scheduled_analysis_delay_seconds: int = 3600
    max_autonomous_actions: int = 2

    model_config = SettingsConfigDict(
        env_prefix="ARIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
