from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional
from enum import Enum
from pydantic import BaseModel


class SensorKind(str, Enum):
    """Hardware streams the platform can deliver"""
    ACCELEROMETER = "accelerometer"
    GYROSCOPE = "gyroscope"
    MAGNETOMETER = "magnetometer"
    LOCATION = "location"
    MOTION = "motion"


class NetworkState(BaseModel):
    is_connected: bool
    type: str = "unknown"  # wifi, cellular, ...


# Motion samples carry x/y/z, location samples latitude/longitude/accuracy
SampleCallback = Callable[[Dict[str, float]], None]


class Subscription(ABC):
    """Handle returned by every platform subscription"""

    @abstractmethod
    def remove(self) -> None:
        pass


class SensorSource(ABC):
    """Platform sensor and permission plumbing"""

    @abstractmethod
    async def request_permission(self, kind: SensorKind) -> bool:
        """Return True if granted; denial is a result, not an error"""
        pass

    @abstractmethod
    def subscribe(self, kind: SensorKind, callback: SampleCallback, interval_ms: int) -> Subscription:
        pass

    @abstractmethod
    async def get_current_position(self) -> Dict[str, float]:
        pass

    @abstractmethod
    async def watch_position(
        self,
        callback: SampleCallback,
        time_interval_ms: int,
        distance_interval_m: float
    ) -> Subscription:
        pass

    @abstractmethod
    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        pass

    @abstractmethod
    async def get_battery_level(self) -> float:
        """Battery level in the 0..1 range"""
        pass

    @abstractmethod
    async def get_network_state(self) -> NetworkState:
        pass

    @abstractmethod
    async def get_brightness(self) -> Optional[float]:
        """Screen brightness in the 0..1 range, None where unsupported"""
        pass

    @abstractmethod
    def add_battery_listener(self, callback: Callable[[float], None]) -> Subscription:
        pass
