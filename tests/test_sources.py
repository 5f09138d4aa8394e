"""
Tests for the answer-source cascade: intent detector, completion models and
the static fallback.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest
from google.api_core.exceptions import ServiceUnavailable
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from healthbot.config import DEFAULT_LLAMA_MODELS
from healthbot.intent import IntentDetector, IntentResult
from healthbot.prompts import build_personalized_prompt, build_system_prompt, format_response, structured_fallback
from healthbot.sources import (
    AnswerSourceCascade,
    CompletionSource,
    IntentDetectorSource,
    StaticFallbackSource,
)
from healthbot.state import Child, ProfileContext
from langsmith_integration import get_chat_model


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _detector_returning(confidence, text="Rest and drink fluids.", intent="fever"):
    detector = MagicMock(spec=IntentDetector)
    detector.detect_intent.return_value = IntentResult(fulfillment_text=text, confidence=confidence, intent=intent)
    return detector


def _unconfigured_detector():
    return IntentDetector(project_id="p", client_email="", private_key="")


def _connection_error():
    return openai.APIConnectionError(request=httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions"))


def _failing_llm():
    llm = MagicMock()
    llm.invoke.side_effect = _connection_error()
    return llm


def _llm_answering(content):
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content=content)
    return llm


# ---------------------------------------------------------------------------
# Cascade ordering
# ---------------------------------------------------------------------------

def test_confident_intent_short_circuits_completion():
    factory = MagicMock(side_effect=AssertionError("completion API must not be called"))
    cascade = AnswerSourceCascade(
        [
            IntentDetectorSource(_detector_returning(0.8)),
            CompletionSource(models=["m1"], chat_model_factory=factory),
            StaticFallbackSource(),
        ]
    )

    attempt = cascade.answer("I have a fever", ProfileContext(), "c1")

    assert attempt.text == "Rest and drink fluids."
    assert attempt.source == "intent_detector"
    factory.assert_not_called()


def test_low_confidence_intent_falls_through_to_completion():
    llm = _llm_answering("Take **rest**.")
    cascade = AnswerSourceCascade(
        [
            IntentDetectorSource(_detector_returning(0.3)),
            CompletionSource(models=["m1"], chat_model_factory=lambda model: llm),
            StaticFallbackSource(),
        ]
    )

    attempt = cascade.answer("I have a fever", ProfileContext(), "c1")

    assert attempt.text == "Take <strong>rest</strong>."
    assert attempt.source == "completion"


def test_everything_failing_ends_in_static_fallback():
    factory = MagicMock(side_effect=lambda model: _failing_llm())
    cascade = AnswerSourceCascade(
        [
            IntentDetectorSource(_unconfigured_detector()),
            CompletionSource(models=["m1", "m2", "m3"], chat_model_factory=factory),
            StaticFallbackSource(),
        ]
    )

    attempt = cascade.answer("When should my baby get vaccinated?", ProfileContext(), "c1")

    assert "Vaccination Info" in attempt.text
    assert attempt.source == "static_fallback"
    assert [call.args[0] for call in factory.call_args_list] == ["m1", "m2", "m3"]


def test_cascade_without_sources_still_answers():
    attempt = AnswerSourceCascade([]).answer("hello", ProfileContext(location="Pune"))

    assert attempt.source == "static_fallback"
    assert "Pune" in attempt.text


# ---------------------------------------------------------------------------
# Intent detector stage
# ---------------------------------------------------------------------------

def test_intent_detector_uses_dialogflow_client():
    client = MagicMock()
    client.session_path.return_value = "projects/p/agent/sessions/c1"
    client.detect_intent.return_value = SimpleNamespace(
        query_result=SimpleNamespace(
            fulfillment_text="Dengue spreads through mosquito bites.",
            intent_detection_confidence=0.92,
            intent=SimpleNamespace(display_name="dengue.info"),
        )
    )
    factory = MagicMock(return_value=client)
    detector = IntentDetector(project_id="p", client_email="bot@p.iam", private_key="key", client_factory=factory)

    result = detector.detect_intent("c1", "what is dengue", "en")

    assert result == IntentResult(
        fulfillment_text="Dengue spreads through mosquito bites.",
        confidence=0.92,
        intent="dengue.info",
    )
    factory.assert_called_once_with("bot@p.iam", "key")
    client.session_path.assert_called_once_with("p", "c1")
    request = client.detect_intent.call_args.kwargs["request"]
    assert request["session"] == "projects/p/agent/sessions/c1"
    assert request["query_input"].text.text == "what is dengue"
    assert request["query_input"].text.language_code == "en"


def test_intent_service_error_is_unusable():
    client = MagicMock()
    client.detect_intent.side_effect = ServiceUnavailable("dialogflow down")
    detector = IntentDetector(project_id="p", client_email="bot@p.iam", private_key="key", client_factory=lambda e, k: client)

    assert IntentDetectorSource(detector).try_answer("fever", ProfileContext(), "c1") is None


def test_missing_credentials_are_unusable():
    assert IntentDetectorSource(_unconfigured_detector()).try_answer("fever", ProfileContext(), "c1") is None


# ---------------------------------------------------------------------------
# Completion stage
# ---------------------------------------------------------------------------

def test_completion_tries_next_model_after_failure():
    llms = {"m1": _failing_llm(), "m2": _llm_answering("Second model\n\n\n\nanswer  ")}
    source = CompletionSource(models=["m1", "m2"], chat_model_factory=llms.get)

    text = source.try_answer("fever", ProfileContext(name="Asha"), "c1")

    assert text == "Second model\n\nanswer"
    prompt = llms["m2"].invoke.call_args.args[0]
    assert isinstance(prompt[0], SystemMessage)
    assert "- Name: Asha" in prompt[0].content
    assert prompt[1] == HumanMessage(content="fever")


def test_completion_without_api_key_is_unusable():
    assert CompletionSource(models=["m1"]).try_answer("fever", ProfileContext(), "c1") is None


def test_completion_all_models_failing_is_unusable():
    source = CompletionSource(models=["m1", "m2"], chat_model_factory=lambda model: _failing_llm())

    assert source.try_answer("fever", ProfileContext(), "c1") is None


# ---------------------------------------------------------------------------
# Prompts and static fallback
# ---------------------------------------------------------------------------

def test_system_prompt_embeds_profile_context():
    context = ProfileContext(
        name="Asha",
        age=32,
        location="Pune",
        children=(Child(name="Aarav", age=8), Child(name="Anika", age=3)),
        conditions="asthma",
    )

    system = build_system_prompt(context)

    assert system.startswith("You are Swasthya HealthBot")
    assert "- Age: 32" in system
    assert "- Location: Pune" in system
    assert "- Children: Aarav (8 years), Anika (3 years)" in system
    assert "- Conditions: asthma" in system
    assert system.endswith("Keep responses clear, practical, and focused on actionable advice.")


def test_system_prompt_without_context_has_no_context_block():
    messages = build_personalized_prompt("hello", ProfileContext())

    assert "User Context" not in messages[0].content
    assert messages[1].content == "hello"


def test_format_response():
    assert format_response("**Stay** hydrated\n \n\nand **rest**\n") == (
        "<strong>Stay</strong> hydrated\n\nand <strong>rest</strong>"
    )


@pytest.mark.parametrize(
    "message, heading",
    [
        ("What are the SYMPTOMS of dengue?", "Symptom Information"),
        ("How to prevent it?", "Prevention Methods"),
        ("Tell me about malaria", "Prevention Methods"),
        ("Vaccine schedule please", "Vaccination Info"),
        ("hello there", "Health Assistance"),
    ],
)
def test_static_fallback_categories(message, heading):
    assert heading in structured_fallback(message, ProfileContext())


def test_location_note_appended():
    response = structured_fallback("hello there", ProfileContext(location="Pune"))

    assert response.startswith("<strong>Health Assistance</strong>")
    last_line = response.splitlines()[-1]
    assert "Pune" in last_line
    assert last_line.startswith("<strong>Location Note:</strong>")


# ---------------------------------------------------------------------------
# Real chat client against malformed completion replies
# ---------------------------------------------------------------------------

def _chat_model_replying(payload, seen):
    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json=payload)

    return ChatOpenAI(
        model="m",
        api_key="gsk-test",
        base_url="https://api.groq.com/openai/v1",
        max_retries=0,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.parametrize(
    "payload",
    [{"choices": None}, {"error": {"message": "model overloaded"}}],
)
def test_malformed_completion_reply_falls_back_to_static_answer(payload):
    seen = []
    cascade = AnswerSourceCascade(
        [
            CompletionSource(models=["m1", "m2"], chat_model_factory=lambda model: _chat_model_replying(payload, seen)),
            StaticFallbackSource(),
        ]
    )

    attempt = cascade.answer("vaccine schedule", ProfileContext(), "c1")

    assert "Vaccination Info" in attempt.text
    assert attempt.source == "static_fallback"
    assert len(seen) == 2


# ---------------------------------------------------------------------------
# Completion client settings
# ---------------------------------------------------------------------------

def test_chat_model_uses_completion_settings(monkeypatch):
    monkeypatch.setenv("LLAMA_API_KEY", "gsk-test")

    llm = get_chat_model("llama-3.1-8b-instant")

    assert llm.model_name == "llama-3.1-8b-instant"
    assert llm.request_timeout == 15.0
    assert llm.temperature == 0.7
    assert llm.max_tokens == 1000
    assert llm.top_p == 0.9
    assert llm.max_retries == 0
    assert llm.openai_api_base == "https://api.groq.com/openai/v1"


def test_chat_model_honours_env_overrides(monkeypatch):
    monkeypatch.setenv("LLAMA_API_KEY", "gsk-test")
    monkeypatch.setenv("LLAMA_TIMEOUT", "30")
    monkeypatch.setenv("LLAMA_BASE_URL", "https://llm.example.org/v1")

    llm = get_chat_model("compound-mini")

    assert llm.request_timeout == 30.0
    assert llm.openai_api_base == "https://llm.example.org/v1"


def test_chat_model_without_key_is_none():
    assert get_chat_model("llama-3.1-8b-instant") is None


def test_completion_models_from_env(monkeypatch):
    assert CompletionSource().models == DEFAULT_LLAMA_MODELS

    monkeypatch.setenv("LLAMA_MODELS", "llama-3.1-8b-instant, compound-mini")

    assert CompletionSource().models == ["llama-3.1-8b-instant", "compound-mini"]
