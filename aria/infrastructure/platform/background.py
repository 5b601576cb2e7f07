from abc import ABC, abstractmethod
from typing import Awaitable, Callable


BackgroundHandler = Callable[[], Awaitable[None]]


class BackgroundScheduler(ABC):
    """OS hook that wakes the app for short background work"""

    @abstractmethod
    async def register(self, name: str, handler: BackgroundHandler, minimum_interval_seconds: int) -> None:
        """Register a handler; raise if the platform refuses"""
        pass
