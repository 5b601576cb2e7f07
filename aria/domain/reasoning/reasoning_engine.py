from typing import Dict, List, Optional
import asyncio
import time
import structlog

from aria.domain.models.assistant_state import AIResponse, ReasoningInput
from aria.domain.orchestration.scheduling import Clock
from aria.infrastructure.backends.base import (
    ModelBackend, BackendRequest, BackendResult, BackendError, BackendTimeoutError
)
from aria.infrastructure.config.settings import Settings
from aria.infrastructure.observability.logging import assistant_logger, metrics
from .model_selector import ModelSelector
from .prompt_builder import build_system_prompt
from . import response_parser

logger = structlog.get_logger(__name__)

ERROR_CONTENT = "I apologize, but I encountered an error while processing your request. Please try again."
ERROR_REASONING = "Error occurred during model inference"
CONSENSUS_REASONING = "Combined reasoning from multiple AI models for enhanced accuracy"


class ReasoningEngine:
    """Routes queries to model backends and structures their answers"""

    def __init__(
        self,
        backends: Dict[str, ModelBackend],
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None
    ):
        self.settings = settings or Settings()
        self.clock = clock or Clock()
        self.backends = backends

        missing = [b for b in backends if b not in self.settings.model_capabilities]
        if missing:
            raise ValueError(f"No capability profile for backends: {', '.join(missing)}")

        # Declaration order follows the capability table
        capabilities = {
            backend_id: caps
            for backend_id, caps in self.settings.model_capabilities.items()
            if backend_id in backends
        }
        self.selector = ModelSelector(capabilities, self.settings.large_context_threshold)

    def build_request(self, input: ReasoningInput) -> BackendRequest:
        """One prompt per call, identical for every backend"""

        return BackendRequest(
            system_prompt=build_system_prompt(
                input.context,
                input.sensor_data,
                now=self.clock.now(),
                assistant_name=self.settings.assistant_name
            ),
            history=input.conversation_history,
            query=input.query,
            image=input.image
        )

    async def process_query(self, input: ReasoningInput) -> AIResponse:
        """Answer with the best-suited backend; never raises"""

        try:
            backend_id = self.selector.select(input)
            logger.info("Selected backend for query", backend_id=backend_id, query=input.query[:50])

            text = await self._invoke(backend_id, self.build_request(input))
            return self._to_response(backend_id, text, input)

        except Exception as e:
            logger.error("Reasoning engine error", error=str(e), error_type=e.__class__.__name__)
            return self.error_response()

    async def get_consensus(self, input: ReasoningInput) -> AIResponse:
        """Ask every backend at once and merge whatever succeeded"""

        try:
            logger.info("Requesting multi-model consensus", backends=list(self.selector.backend_ids))

            results = await self.invoke_all(self.build_request(input))
            responses = [
                self._to_response(result.backend_id, result.text, input)
                for result in results if result.ok
            ]

            if not responses:
                raise BackendError("All models failed to respond")

            combined = "\n\n".join(
                f"Model {index} ({response.model}): {response.content}"
                for index, response in enumerate(responses, start=1)
            )

            unique_actions: List[str] = []
            for response in responses:
                for action in response.actions or []:
                    if action not in unique_actions:
                        unique_actions.append(action)

            return AIResponse(
                content=f"Multi-model consensus analysis:\n\n{combined}",
                reasoning=CONSENSUS_REASONING,
                actions=unique_actions,
                confidence=sum(r.confidence for r in responses) / len(responses),
                model="consensus",
                timestamp=self.clock.now(),
                context_used=response_parser.context_used(input)
            )

        except Exception as e:
            logger.error("Consensus error, falling back to single model", error=str(e))
            return await self.process_query(input)

    async def invoke_all(self, request: BackendRequest) -> List[BackendResult]:
        """Fan out to every backend and wait for all of them to settle"""

        backend_ids = self.selector.backend_ids
        outcomes = await asyncio.gather(
            *(self._invoke(backend_id, request) for backend_id in backend_ids),
            return_exceptions=True
        )

        results = []
        for backend_id, outcome in zip(backend_ids, outcomes):
            if isinstance(outcome, BaseException):
                results.append(BackendResult.failure(backend_id, outcome))
            else:
                results.append(BackendResult.success(backend_id, outcome))
        return results

    async def _invoke(self, backend_id: str, request: BackendRequest) -> str:
        """Call one backend under the configured timeout"""

        backend = self.backends[backend_id]
        started = time.perf_counter()

        try:
            text = await asyncio.wait_for(
                backend.invoke(request),
                timeout=self.settings.backend_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            self._record_call(backend_id, started, error="timeout")
            raise BackendTimeoutError(
                f"{backend_id} did not respond within {self.settings.backend_timeout_seconds}s",
                backend_id=backend_id
            ) from e
        except Exception as e:
            self._record_call(backend_id, started, error=str(e))
            raise

        self._record_call(backend_id, started)
        return text

    def _record_call(self, backend_id: str, started: float, error: Optional[str] = None):
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record_latency(f"backend.{backend_id}", duration_ms)
        if error is not None:
            metrics.increment_counter("backend.failures", tags={"backend": backend_id})
        assistant_logger.log_backend_call(backend_id, duration_ms, success=error is None, error=error)

    def _to_response(self, backend_id: str, text: str, input: ReasoningInput) -> AIResponse:
        return AIResponse(
            content=text,
            reasoning=response_parser.extract_reasoning(text),
            actions=response_parser.extract_actions(text),
            confidence=response_parser.assess_confidence(text),
            model=backend_id,
            timestamp=self.clock.now(),
            context_used=response_parser.context_used(input)
        )

    def error_response(self) -> AIResponse:
        """Fixed answer returned whenever inference fails"""

        return AIResponse(
            content=ERROR_CONTENT,
            reasoning=ERROR_REASONING,
            confidence=0.1,
            model="error",
            timestamp=self.clock.now(),
            context_used=[]
        )
