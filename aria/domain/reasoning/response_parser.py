"""Heuristic extraction of structured fields from free-text model output.

Plain pattern matches over the response text. Tests pin their behaviour
against literal strings, so keep the patterns stable.
"""

from typing import List, Optional
import re

from aria.domain.models.assistant_state import ReasoningInput

DEFAULT_REASONING = "Direct response based on available context"

REASONING_PATTERN = re.compile(r"(?:reasoning|because|due to|analysis):?\s*(.+)", re.IGNORECASE)
ACTIONS_PATTERN = re.compile(
    r"(?:actions?|suggestions?|recommendations?):?\s*(.*?)(?=\n\n|\Z)",
    re.IGNORECASE | re.DOTALL
)
ACTION_SPLIT_PATTERN = re.compile(r"\n|,|\d+\.")
BULLET_PATTERN = re.compile(r"^[-•*]\s*")

BASE_CONFIDENCE = 0.7
CONFIDENCE_STEP = 0.05
CONFIDENCE_WORDS = ("definitely", "certainly", "clearly", "obviously", "confirmed")
UNCERTAINTY_WORDS = ("might", "could", "possibly", "perhaps", "maybe", "uncertain")


def extract_reasoning(content: str) -> str:
    """Text following the first reasoning marker on its line"""

    match = REASONING_PATTERN.search(content)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return DEFAULT_REASONING


def extract_actions(content: str) -> List[str]:
    """Entries of the first actions/suggestions/recommendations block"""

    match = ACTIONS_PATTERN.search(content)
    if not match:
        return []

    actions = []
    for part in ACTION_SPLIT_PATTERN.split(match.group(1)):
        action = BULLET_PATTERN.sub("", part.strip()).strip()
        if action:
            actions.append(action)
    return actions


def assess_confidence(content: str) -> float:
    """0.7 nudged up by assertive words and down by hedging, clamped to [0.1, 1.0]"""

    lowered = content.lower()
    confident = sum(lowered.count(word) for word in CONFIDENCE_WORDS)
    uncertain = sum(lowered.count(word) for word in UNCERTAINTY_WORDS)

    confidence = BASE_CONFIDENCE + confident * CONFIDENCE_STEP - uncertain * CONFIDENCE_STEP
    return max(0.1, min(1.0, confidence))


def context_used(input: Optional[ReasoningInput]) -> List[str]:
    """Tags for the optional inputs that were present"""

    if input is None:
        return []

    used = []
    sensor = input.sensor_data
    if sensor and sensor.accelerometer:
        used.append("motion")
    if sensor and sensor.location:
        used.append("location")
    if sensor and sensor.device_info:
        used.append("device_state")
    if input.vision_data:
        used.append("vision")
    if input.audio_data:
        used.append("audio")
    if input.conversation_history:
        used.append("conversation_history")
    return used
