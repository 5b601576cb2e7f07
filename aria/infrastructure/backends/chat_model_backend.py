from typing import Any, List
import asyncio
import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, AIMessage, SystemMessage

from .base import (
    ModelBackend, BackendRequest, BackendError, AuthError, RateLimitError,
    BackendNetworkError, BackendTimeoutError, MalformedResponseError
)

logger = structlog.get_logger(__name__)


class ChatModelBackend(ModelBackend):
    """Adapts any langchain chat model to the backend contract"""

    def __init__(self, backend_id: str, chat_model: BaseChatModel):
        super().__init__(backend_id)
        self.chat_model = chat_model

    def build_messages(self, request: BackendRequest) -> List[BaseMessage]:
        """Convert a backend request into chat messages"""

        messages: List[BaseMessage] = [SystemMessage(content=request.system_prompt)]

        for turn in request.history:
            if turn.role == "assistant":
                messages.append(AIMessage(content=turn.content))
            else:
                messages.append(HumanMessage(content=turn.content))

        if request.image:
            messages.append(HumanMessage(content=[
                {"type": "text", "text": request.query},
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{request.image}"}}
            ]))
        else:
            messages.append(HumanMessage(content=request.query))

        return messages

    async def invoke(self, request: BackendRequest) -> str:
        """Call the chat model and normalize its reply to text"""

        messages = self.build_messages(request)

        try:
            response = await self.chat_model.ainvoke(messages)
        except BackendError:
            raise
        except Exception as e:
            raise self._translate_error(e) from e

        return self._extract_text(response)

    def _extract_text(self, response: Any) -> str:
        """Normalize string or content-block replies"""

        content = getattr(response, "content", None)

        if isinstance(content, str):
            text = content
        elif isinstance(content, list):
            parts = []
            for block in content:
                if isinstance(block, str):
                    parts.append(block)
                elif isinstance(block, dict) and block.get("type") == "text":
                    parts.append(block.get("text", ""))
            text = "".join(parts)
        else:
            raise MalformedResponseError(
                f"Unexpected response type {type(response).__name__}",
                backend_id=self.backend_id
            )

        if not text.strip():
            raise MalformedResponseError("Empty response content", backend_id=self.backend_id)

        return text

    def _translate_error(self, error: Exception) -> BackendError:
        """Map provider exceptions onto the backend error taxonomy"""

        status = getattr(error, "status_code", None)
        if status is None:
            status = getattr(getattr(error, "response", None), "status_code", None)

        if isinstance(error, asyncio.TimeoutError):
            translated: BackendError = BackendTimeoutError(str(error) or "timeout", self.backend_id)
        elif status in (401, 403):
            translated = AuthError(str(error), self.backend_id)
        elif status == 429:
            translated = RateLimitError(str(error), self.backend_id)
        elif isinstance(error, (ConnectionError, OSError)):
            translated = BackendNetworkError(str(error), self.backend_id)
        else:
            translated = BackendError(str(error), self.backend_id)

        logger.warning(
            "Backend call failed",
            backend_id=self.backend_id,
            error_type=translated.__class__.__name__,
            error=str(error)
        )
        return translated
