from __future__ import annotations

from typing import Any, Callable

from google.cloud import dialogflow
from google.oauth2 import service_account
from pydantic import BaseModel

from .config import dialogflow_language_code, dialogflow_project_id, env_str

TOKEN_URI = "https://oauth2.googleapis.com/token"


class IntentDetectorNotConfigured(RuntimeError):
    pass


class IntentResult(BaseModel):
    fulfillment_text: str = ""
    confidence: float = 0.0
    intent: str = ""


def _default_client_factory(client_email: str, private_key: str) -> Any:
    credentials = service_account.Credentials.from_service_account_info(
        {
            "client_email": client_email,
            "private_key": private_key.replace("\\n", "\n"),
            "token_uri": TOKEN_URI,
        }
    )
    return dialogflow.SessionsClient(credentials=credentials)


class IntentDetector:
    """Thin wrapper over the Dialogflow sessions API for one agent project."""

    def __init__(
        self,
        project_id: str | None = None,
        client_email: str | None = None,
        private_key: str | None = None,
        client_factory: Callable[[str, str], Any] | None = None,
    ) -> None:
        self.project_id = project_id or dialogflow_project_id()
        self.client_email = client_email if client_email is not None else env_str("DIALOGFLOW_CLIENT_EMAIL")
        self.private_key = private_key if private_key is not None else env_str("DIALOGFLOW_PRIVATE_KEY")
        self._client_factory = client_factory or _default_client_factory
        self._client: Any = None

    @property
    def configured(self) -> bool:
        return bool(self.client_email and self.private_key)

    def _get_client(self) -> Any:
        if not self.configured:
            raise IntentDetectorNotConfigured("Dialogflow credentials not configured")
        if self._client is None:
            self._client = self._client_factory(self.client_email, self.private_key)
        return self._client

    def detect_intent(self, session_id: str, query: str, language_code: str | None = None) -> IntentResult:
        client = self._get_client()
        session_path = client.session_path(self.project_id, session_id)
        text_input = dialogflow.TextInput(text=query, language_code=language_code or dialogflow_language_code())
        query_input = dialogflow.QueryInput(text=text_input)

        response = client.detect_intent(request={"session": session_path, "query_input": query_input})
        result = response.query_result
        return IntentResult(
            fulfillment_text=result.fulfillment_text,
            confidence=float(result.intent_detection_confidence),
            intent=result.intent.display_name,
        )
