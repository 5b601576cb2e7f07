from abc import ABC, abstractmethod
from typing import List, Optional
from pydantic import BaseModel, Field

from aria.domain.models.assistant_state import ConversationTurn


class BackendError(Exception):
    """Base failure raised by a model backend"""

    def __init__(self, message: str, backend_id: Optional[str] = None):
        super().__init__(message)
        self.backend_id = backend_id


class AuthError(BackendError):
    """Credentials rejected by the provider"""


class RateLimitError(BackendError):
    """Provider is throttling requests"""


class BackendNetworkError(BackendError):
    """Provider could not be reached"""


class BackendTimeoutError(BackendNetworkError):
    """Provider did not answer in time"""


class MalformedResponseError(BackendError):
    """Provider answered with something that is not usable text"""


class BackendRequest(BaseModel):
    """Provider-neutral request handed to every backend"""
    system_prompt: str
    history: List[ConversationTurn] = Field(default_factory=list)
    query: str
    image: Optional[str] = Field(None, description="Base64 encoded image payload")


class BackendResult(BaseModel):
    """Settled outcome of one backend call"""
    backend_id: str
    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def success(cls, backend_id: str, text: str) -> "BackendResult":
        return cls(backend_id=backend_id, ok=True, text=text)

    @classmethod
    def failure(cls, backend_id: str, error: BaseException) -> "BackendResult":
        return cls(
            backend_id=backend_id,
            ok=False,
            error=str(error) or error.__class__.__name__,
            error_type=error.__class__.__name__
        )


class ModelBackend(ABC):
    """A language model provider: send messages, get text back, may fail"""

    def __init__(self, backend_id: str):
        self.backend_id = backend_id

    @abstractmethod
    async def invoke(self, request: BackendRequest) -> str:
        """Return the raw response text or raise a BackendError"""
        pass
