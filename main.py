from __future__ import annotations

import argparse
import json
import uuid

from healthbot.config import load_env_file

load_env_file()

from healthbot.router import ConversationRouter  # noqa: E402
from langsmith_integration import get_default_logger  # noqa: E402

EXIT_WORDS = {"exit", "quit", "bye"}


def run_console_chat(conversation_id: str) -> None:
    print("Swasthya HealthBot console (type 'exit' to quit)\n")
    logger = get_default_logger()
    logger.start_run("console_chat", inputs={"conversation_id": conversation_id})
    router = ConversationRouter()

    # The bot speaks first, like a fresh browser session.
    result = router.handle_message("", conversation_id)
    print(f"Bot: {result.response_text}\n")

    status = "completed"
    try:
        while True:
            user_text = input("You: ").strip()
            if not user_text:
                continue
            if user_text.lower() in EXIT_WORDS:
                break
            result = router.handle_message(user_text, conversation_id)
            print(f"Bot [{result.source}]: {result.response_text}\n")
    except (KeyboardInterrupt, EOFError):
        status = "interrupted"

    print(json.dumps({"userContext": result.user_context.to_dict()}, ensure_ascii=False, indent=2))
    logger.end_run(status)


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with Swasthya HealthBot from the terminal.")
    parser.add_argument("--session", default="", help="conversation id (random when omitted)")
    args = parser.parse_args()
    run_console_chat(args.session or f"console-{uuid.uuid4().hex[:8]}")


if __name__ == "__main__":
    main()
