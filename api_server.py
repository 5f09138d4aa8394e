from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from healthbot.config import DEFAULT_PORT, allowed_origins, env_int, load_env_file

load_env_file()

from healthbot.gateway import EMPTY_TWIML, ERROR_TWIML, get_whatsapp_gateway, normalize_sender  # noqa: E402
from healthbot.reminders import is_profile_complete, vaccination_reminders  # noqa: E402
from healthbot.router import ConversationRouter  # noqa: E402
from langsmith_integration import get_default_logger  # noqa: E402

TECHNICAL_DIFFICULTY_MESSAGE = "I'm experiencing technical difficulties. Please try again later."
FEATURES = ["chat", "profile creation", "twilio_whatsapp", "llama_fallback"]

logger = get_default_logger()

app = FastAPI(title="Swasthya HealthBot API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = ConversationRouter()
gateway = get_whatsapp_gateway()


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    user_context: dict[str, Any] = Field(default_factory=dict, alias="userContext")


class ProfileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    user_context: dict[str, Any] = Field(default_factory=dict, alias="userContext")
    profile_setup_step: int = Field(default=0, alias="profileSetupStep")
    profile_complete: bool = Field(default=False, alias="profileComplete")
    is_complete: bool = Field(default=False, alias="isComplete")
    vaccination_reminders: list[dict[str, Any]] = Field(default_factory=list, alias="vaccinationReminders")


def _error_envelope() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "response": TECHNICAL_DIFFICULTY_MESSAGE},
    )


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.log_event("request_validation_error", {"path": request.url.path, "errors": str(exc.errors())})
    return _error_envelope()


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "OK",
        "message": "Swasthya HealthBot API is running",
        "features": list(FEATURES),
    }


@app.post("/api/chat", response_model=ChatResponse)
def chat(payload: ChatRequest) -> Any:
    try:
        result = router.handle_message(payload.message, payload.session_id)
    except Exception as exc:
        logger.log_event("chat_endpoint_error", {"error": str(exc)})
        return _error_envelope()
    return ChatResponse(response=result.response_text, user_context=result.user_context.to_dict())


@app.get("/api/sessions/{session_id}/profile", response_model=ProfileResponse)
def session_profile(session_id: str) -> ProfileResponse:
    session = router.store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    context = session.user_context
    return ProfileResponse(
        session_id=session_id,
        user_context=context.to_dict(),
        profile_setup_step=session.profile_setup_step,
        profile_complete=session.profile_complete,
        is_complete=is_profile_complete(context),
        vaccination_reminders=vaccination_reminders(context),
    )


@app.post("/api/whatsapp")
def whatsapp_webhook(
    body: str | None = Form(default=None, alias="Body"),
    sender: str = Form(default="", alias="From"),
) -> Response:
    if gateway is None:
        return PlainTextResponse("Twilio not configured.", status_code=500)

    conversation_id = normalize_sender(sender)
    try:
        result = router.handle_message(body, conversation_id)
        gateway.send(to=sender, body=result.response_text)
    except Exception as exc:
        logger.log_event("whatsapp_webhook_error", {"error": str(exc), "conversation_id": conversation_id})
        return Response(content=ERROR_TWIML, media_type="text/xml")
    return Response(content=EMPTY_TWIML, media_type="text/xml")


@app.post("/api/whatsapp-status")
def whatsapp_status(
    message_sid: str = Form(default="", alias="MessageSid"),
    message_status: str = Form(default="", alias="MessageStatus"),
    recipient: str = Form(default="", alias="To"),
) -> PlainTextResponse:
    logger.log_event(
        "whatsapp_status_update",
        {"message_sid": message_sid, "status": message_status, "to": recipient},
    )
    return PlainTextResponse("OK", status_code=200)


if __name__ == "__main__":
    import uvicorn

    port = env_int("PORT", DEFAULT_PORT)
    print(f"[Server] Swasthya HealthBot running on port {port}")
    print(f"[Server] Health check: http://localhost:{port}/health")
    uvicorn.run(app, host="0.0.0.0", port=port)
