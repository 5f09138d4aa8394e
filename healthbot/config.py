from __future__ import annotations

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

DEFAULT_PORT = 3001
DEFAULT_LLAMA_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_LLAMA_MODELS = [
    "llama-3.3-70b-versatile",
    "llama-3.1-8b-instant",
    "llama-4-scout-17b-16e",
    "compound-mini",
]
DEFAULT_LLAMA_TIMEOUT = 15.0
DEFAULT_DIALOGFLOW_PROJECT = "default-project"
DEFAULT_LANGUAGE_CODE = "en"


def load_env_file(env_path: Path | None = None) -> None:
    path = env_path or Path(__file__).resolve().parent.parent / ".env"
    if path.exists():
        load_dotenv(path, override=False)


def env_str(name: str, default: str = "") -> str:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "")
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or list(default)


def llama_models() -> List[str]:
    return env_list("LLAMA_MODELS", DEFAULT_LLAMA_MODELS)


def llama_timeout() -> float:
    return env_float("LLAMA_TIMEOUT", DEFAULT_LLAMA_TIMEOUT)


def dialogflow_project_id() -> str:
    return env_str("DIALOGFLOW_PROJECT_ID", DEFAULT_DIALOGFLOW_PROJECT)


def dialogflow_language_code() -> str:
    return env_str("DIALOGFLOW_LANGUAGE_CODE", DEFAULT_LANGUAGE_CODE)


def allowed_origins() -> List[str]:
    return env_list("FRONTEND_ORIGIN", ["*"])
