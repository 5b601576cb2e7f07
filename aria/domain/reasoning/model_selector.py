from typing import Dict, List, Sequence, Tuple
import re
import structlog

from aria.domain.models.assistant_state import ModelCapabilities, ReasoningInput
from aria.infrastructure.observability.logging import assistant_logger

logger = structlog.get_logger(__name__)

REASONING_PATTERN = re.compile(r"analyze|compare|synthesize|deduce|infer|reasoning|logic|problem", re.IGNORECASE)
VISION_PATTERN = re.compile(r"image|photo|visual|see|look|camera", re.IGNORECASE)
REAL_TIME_PATTERN = re.compile(r"current|now|live|real.time|latest", re.IGNORECASE)
CODE_PATTERN = re.compile(r"code|program|script|function|algorithm", re.IGNORECASE)

# Bonuses handed out by rank; backends past the end get the last weight
REASONING_WEIGHTS = (3, 2, 1)
VISION_WEIGHTS = (2, 2, 1)
CODE_WEIGHTS = (3, 2, 1)
REAL_TIME_BONUS = 3
LARGE_CONTEXT_BONUS = 2
PREFERRED_BONUS = 2


class ModelSelector:
    """Scores backends against query cues and picks the best one"""

    def __init__(self, capabilities: Dict[str, ModelCapabilities], large_context_threshold: int = 50000):
        if not capabilities:
            raise ValueError("At least one backend capability profile is required")
        self.capabilities = capabilities
        self.large_context_threshold = large_context_threshold

    @property
    def backend_ids(self) -> List[str]:
        """Backend identifiers in declaration order"""
        return list(self.capabilities)

    def detect_cues(self, input: ReasoningInput) -> List[str]:
        """Which query classes the input belongs to"""

        query = input.query
        cues = []

        if REASONING_PATTERN.search(query):
            cues.append("reasoning")
        if input.vision_data is not None or VISION_PATTERN.search(query):
            cues.append("vision")
        if REAL_TIME_PATTERN.search(query):
            cues.append("real_time")
        if CODE_PATTERN.search(query):
            cues.append("code")
        if len(input.model_dump_json()) > self.large_context_threshold:
            cues.append("large_context")

        return cues

    def score(self, input: ReasoningInput) -> Tuple[Dict[str, int], List[str]]:
        """Cumulative score per backend plus the cues that produced it"""

        scores = {backend_id: 0 for backend_id in self.capabilities}
        cues = self.detect_cues(input)

        preferred = input.context.user_preferences.preferred_model
        if preferred in scores:
            scores[preferred] += PREFERRED_BONUS

        if "reasoning" in cues:
            self._apply_ranked(scores, self._rank_by(lambda c: c.reasoning), REASONING_WEIGHTS)

        if "vision" in cues:
            vision_capable = [b for b in self._rank_by(lambda c: c.reasoning) if self.capabilities[b].vision]
            self._apply_ranked(scores, vision_capable, VISION_WEIGHTS)

        if "real_time" in cues:
            for backend_id, caps in self.capabilities.items():
                if caps.real_time_data:
                    scores[backend_id] += REAL_TIME_BONUS

        if "code" in cues:
            self._apply_ranked(scores, self._rank_by(lambda c: c.code_generation), CODE_WEIGHTS)

        if "large_context" in cues:
            largest = self._rank_by(lambda c: c.context_window)[0]
            scores[largest] += LARGE_CONTEXT_BONUS

        return scores, cues

    def select(self, input: ReasoningInput) -> str:
        """Highest score wins; ties go to the first declared backend"""

        scores, cues = self.score(input)
        order = self.backend_ids
        selected = max(order, key=lambda b: (scores[b], -order.index(b)))

        assistant_logger.log_model_selection(selected, scores, cues)
        return selected

    def _rank_by(self, key) -> List[str]:
        """Backends ordered by a capability, descending, declaration order on ties"""
        order = self.backend_ids
        return sorted(order, key=lambda b: (-key(self.capabilities[b]), order.index(b)))

    @staticmethod
    def _apply_ranked(scores: Dict[str, int], ranked: Sequence[str], weights: Sequence[int]):
        for position, backend_id in enumerate(ranked):
            scores[backend_id] += weights[min(position, len(weights) - 1)]
