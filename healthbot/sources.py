from __future__ import annotations

from typing import Any, Callable, List, Sequence

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from openai import OpenAIError

from langsmith_integration import get_chat_model, get_default_logger
from .config import dialogflow_language_code, llama_models
from .intent import IntentDetector, IntentDetectorNotConfigured
from .prompts import build_personalized_prompt, format_response, structured_fallback
from .state import SOURCE_COMPLETION, SOURCE_FALLBACK, SOURCE_INTENT, AnswerAttempt, ProfileContext

logger = get_default_logger()

INTENT_CONFIDENCE_THRESHOLD = 0.3


class AnswerSource:
    """One candidate answer provider in the cascade.

    ``try_answer`` returns the answer text, or None when this source cannot
    answer. Service and configuration failures are handled inside the source.
    """

    name = "answer_source"

    def try_answer(self, message: str, context: ProfileContext, conversation_id: str = "") -> str | None:
        raise NotImplementedError


class IntentDetectorSource(AnswerSource):
    name = SOURCE_INTENT

    def __init__(
        self,
        detector: IntentDetector | None = None,
        threshold: float = INTENT_CONFIDENCE_THRESHOLD,
        language_code: str | None = None,
    ) -> None:
        self.detector = detector if detector is not None else IntentDetector()
        self.threshold = threshold
        self.language_code = language_code

    def try_answer(self, message: str, context: ProfileContext, conversation_id: str = "") -> str | None:
        try:
            result = self.detector.detect_intent(
                conversation_id,
                message,
                self.language_code or dialogflow_language_code(),
            )
        except IntentDetectorNotConfigured as e:
            logger.log_event("intent_detector_unconfigured", {"error": str(e)})
            return None
        except (GoogleAPIError, GoogleAuthError, ValueError) as e:
            logger.log_event("intent_detector_failed", {"error": str(e)})
            return None

        if result.confidence <= self.threshold:
            logger.log_event(
                "intent_detector_low_confidence",
                {"intent": result.intent, "confidence": result.confidence},
            )
            return None
        return result.fulfillment_text or None


class CompletionSource(AnswerSource):
    name = SOURCE_COMPLETION

    def __init__(
        self,
        models: Sequence[str] | None = None,
        chat_model_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.models = list(models) if models else llama_models()
        self.chat_model_factory = chat_model_factory or get_chat_model

    def try_answer(self, message: str, context: ProfileContext, conversation_id: str = "") -> str | None:
        prompt = build_personalized_prompt(message, context)
        for model in self.models:
            llm = self.chat_model_factory(model)
            if llm is None:
                logger.log_event("completion_unconfigured", {"model": model})
                return None
            try:
                response = llm.invoke(prompt)
            except (OpenAIError, ValueError, TypeError, KeyError) as e:
                # Error bodies and missing choices on a 200 reply surface as ValueError/TypeError.
                logger.log_event("completion_model_failed", {"model": model, "error": str(e)})
                continue

            text = getattr(response, "content", None) or ""
            if not isinstance(text, str) or not text.strip():
                logger.log_event("completion_model_empty", {"model": model})
                continue
            return format_response(text)

        logger.log_event("completion_all_models_failed", {"models": list(self.models)})
        return None


class StaticFallbackSource(AnswerSource):
    name = SOURCE_FALLBACK

    def try_answer(self, message: str, context: ProfileContext, conversation_id: str = "") -> str | None:
        return structured_fallback(message, context)


class AnswerSourceCascade:
    def __init__(self, sources: Sequence[AnswerSource]) -> None:
        self.sources: List[AnswerSource] = list(sources)

    def answer(self, message: str, context: ProfileContext, conversation_id: str = "") -> AnswerAttempt:
        for source in self.sources:
            text = source.try_answer(message, context, conversation_id)
            if text:
                return AnswerAttempt(text=text, source=source.name)
        return AnswerAttempt(text=structured_fallback(message, context), source=SOURCE_FALLBACK)


def build_default_cascade() -> AnswerSourceCascade:
    return AnswerSourceCascade([IntentDetectorSource(), CompletionSource(), StaticFallbackSource()])
