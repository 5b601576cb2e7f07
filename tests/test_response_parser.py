import pytest

from aria.domain.models.assistant_state import (
    AudioData, ConversationTurn, LocationReading, SensorSnapshot, VisionAnalysis, Vector3Reading
)
from aria.domain.reasoning.response_parser import (
    DEFAULT_REASONING, assess_confidence, context_used, extract_actions, extract_reasoning
)

from conftest import make_input


class TestExtractReasoning:

    def test_text_after_because(self):
        assert extract_reasoning("Stay inside because the storm is close.") == "the storm is close."

    def test_reasoning_heading_stops_at_line_end(self):
        content = "Answer first.\nReasoning: battery is low\nActions: charge"
        assert extract_reasoning(content) == "battery is low"

    def test_case_insensitive(self):
        assert extract_reasoning("DUE TO heavy traffic, leave early") == "heavy traffic, leave early"

    def test_fallback_when_no_marker(self):
        assert extract_reasoning("Sure, here you go.") == DEFAULT_REASONING


class TestExtractActions:

    def test_numbered_list_under_heading(self):
        content = (
            "Here is my answer.\n\n"
            "Suggested actions:\n1. Charge your phone\n2. Take a walk\n\n"
            "Confidence: high"
        )
        assert extract_actions(content) == ["Charge your phone", "Take a walk"]

    def test_comma_separated_bullets(self):
        assert extract_actions("Recommendations: - drink water, - stretch") == ["drink water", "stretch"]

    def test_bullet_lines_until_end_of_text(self):
        content = "Suggestions:\n• Close background apps\n* Lower brightness\n"
        assert extract_actions(content) == ["Close background apps", "Lower brightness"]

    def test_no_heading_means_no_actions(self):
        assert extract_actions("Nothing to do today.") == []


class TestAssessConfidence:

    def test_neutral_text_is_base(self):
        assert assess_confidence("The weather is mild.") == pytest.approx(0.7)

    def test_confident_words_raise(self):
        assert assess_confidence("This will definitely work, clearly.") == pytest.approx(0.8)

    def test_hedging_words_lower(self):
        assert assess_confidence("It might rain, maybe later.") == pytest.approx(0.6)

    def test_repeated_occurrences_count(self):
        assert assess_confidence("perhaps perhaps perhaps") == pytest.approx(0.55)

    def test_clamped_to_range(self):
        assert assess_confidence("maybe " * 20) == pytest.approx(0.1)
        assert assess_confidence("definitely " * 20) == pytest.approx(1.0)


class TestContextUsed:

    def test_no_optional_inputs(self):
        assert context_used(make_input("hi")) == []

    def test_all_inputs_tagged_in_order(self):
        input = make_input(
            "hi",
            sensor_data=SensorSnapshot(
                accelerometer=Vector3Reading(x=0, y=0, z=9.8),
                location=LocationReading(latitude=1.0, longitude=2.0),
            ),
            vision_data=VisionAnalysis(description="a desk", objects=["laptop"]),
            audio_data=AudioData(transcription="hello"),
            conversation_history=[ConversationTurn(role="user", content="earlier")]
        )
        assert context_used(input) == ["motion", "location", "vision", "audio", "conversation_history"]
