"""
Shared pytest fixtures for the healthbot tests.

External services (Dialogflow, the completion API, Twilio, LangSmith) are never
contacted: credentials are cleared and answer sources are replaced by fakes.
"""

import pytest

from healthbot.router import ConversationRouter
from healthbot.session_store import InMemorySessionStore
from healthbot.sources import AnswerSource, AnswerSourceCascade, StaticFallbackSource


SERVICE_ENV_VARS = [
    "LLAMA_API_KEY",
    "LLAMA_MODELS",
    "LLAMA_BASE_URL",
    "LLAMA_TIMEOUT",
    "DIALOGFLOW_CLIENT_EMAIL",
    "DIALOGFLOW_PRIVATE_KEY",
    "DIALOGFLOW_PROJECT_ID",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_WHATSAPP_NUMBER",
    "LANGSMITH_API_KEY",
]


class FakeSource(AnswerSource):
    """Answer source stand-in that records every call."""

    def __init__(self, name="fake", answer=None):
        self.name = name
        self.answer = answer
        self.calls = []

    def try_answer(self, message, context, conversation_id=""):
        self.calls.append((message, context, conversation_id))
        return self.answer


@pytest.fixture(autouse=True)
def no_service_credentials(monkeypatch):
    for name in SERVICE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def answering_source():
    return FakeSource(name="fake_llm", answer="Drink plenty of clean water.")


@pytest.fixture
def router(store, answering_source):
    cascade = AnswerSourceCascade([answering_source, StaticFallbackSource()])
    return ConversationRouter(store=store, cascade=cascade)
