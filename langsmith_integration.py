import os
import uuid
from datetime import datetime, timezone
from typing import Any

from langchain_openai import ChatOpenAI
from langsmith import Client

from healthbot.config import DEFAULT_LLAMA_BASE_URL, env_str, llama_timeout


def configure_langsmith(project: str | None = None) -> dict[str, Any]:
    api_key = os.getenv("LANGSMITH_API_KEY")
    project_name = project or os.getenv("LANGSMITH_PROJECT") or "swasthya-healthbot"

    status: dict[str, Any] = {
        "has_api_key": bool(api_key),
        "project": project_name,
        "tracing_enabled": False,
    }

    if not api_key:
        return status

    if not os.getenv("LANGSMITH_TRACING"):
        os.environ["LANGSMITH_TRACING"] = "true"

    os.environ["LANGSMITH_PROJECT"] = project_name
    status["tracing_enabled"] = os.getenv("LANGSMITH_TRACING", "").lower() == "true"
    return status


def get_chat_model(model: str) -> Any | None:
    """Build a chat client for one completion model, or None when no key is set."""
    api_key = env_str("LLAMA_API_KEY")
    if not api_key:
        print("[LLM] LLAMA_API_KEY not set; skipping completion stage.")
        return None

    base_url = env_str("LLAMA_BASE_URL", DEFAULT_LLAMA_BASE_URL)
    return ChatOpenAI(
        model=model,
        api_key=api_key,
        base_url=base_url,
        temperature=0.7,
        max_tokens=1000,
        top_p=0.9,
        timeout=llama_timeout(),
        max_retries=0,
    )


class LangSmithLogger:
    def __init__(self, api_key: str | None = None, project: str | None = None):
        self.api_key = api_key or os.getenv("LANGSMITH_API_KEY")
        self.project = project or os.getenv("LANGSMITH_PROJECT") or "swasthya-healthbot"
        self.enabled = bool(self.api_key)
        self.client = None
        self.run_id = None
        self.events: list[dict[str, Any]] = []

        if self.enabled:
            try:
                self.client = Client(api_key=self.api_key)
            except Exception as e:
                print(f"[LangSmith] Client init failed: {e}")
                self.enabled = False

    def start_run(self, name: str, inputs: dict | None = None) -> str:
        self.run_id = str(uuid.uuid4())
        self.events = []
        if self.enabled:
            try:
                self.client.create_run(
                    id=self.run_id,
                    name=name,
                    project_name=self.project,
                    inputs=inputs or {},
                    run_type="chain",
                )
            except Exception as e:
                print(f"[LangSmith] start_run failed: {e}")
                self.enabled = False

        print(f"[LangSmith] run_started: {self.run_id} name={name}")
        return self.run_id

    def log_event(self, body: str, metadata: dict | None = None) -> None:
        metadata = metadata or {}
        if self.run_id:
            self.events.append({"body": body, "metadata": metadata})
        print(f"[HealthBot-LOG] {body} | {metadata}")

    def end_run(self, status: str = "completed") -> None:
        if self.enabled and self.run_id:
            try:
                self.client.update_run(
                    self.run_id,
                    outputs={"status": status, "events": self.events},
                    end_time=datetime.now(timezone.utc),
                )
            except Exception as e:
                print(f"[LangSmith] end_run failed: {e}")
                self.enabled = False

        print(f"[LangSmith] run_ended: {self.run_id} status={status}")


def get_default_logger():
    return LangSmithLogger()
