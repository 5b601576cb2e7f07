from .base import (
    ModelBackend, BackendRequest, BackendResult, BackendError, AuthError,
    RateLimitError, BackendNetworkError, BackendTimeoutError, MalformedResponseError
)
from .chat_model_backend import ChatModelBackend
