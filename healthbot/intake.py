from __future__ import annotations

from typing import Tuple

from .extractor import extract_profile_info
from .state import SessionState

PROFILE_QUESTIONS: Tuple[str, ...] = (
    "Hello! I'm Swasthya HealthBot. What's your name?",
    "How old are you?",
    "Do you have any children? Names and ages, e.g., Aarav-8, Anika-3.",
    "Do you have any pre-existing health conditions or diseases I should know about?",
    "Where do you live? (City or village)",
)

PROFILE_COMPLETE_MESSAGE = "Profile creation complete! You can now ask me health questions."


def get_next_profile_question(step: int) -> str | None:
    if 0 <= step < len(PROFILE_QUESTIONS):
        return PROFILE_QUESTIONS[step]
    return None


def run_intake_turn(session: SessionState, message: str) -> Tuple[SessionState, str]:
    """Advance the onboarding script by one reply.

    The first turn only asks the opening question; later turns first read the
    reply to the previous question into the profile.
    """
    context = session.user_context
    if session.profile_setup_step > 0:
        context = extract_profile_info(message, context)

    question = get_next_profile_question(session.profile_setup_step)
    next_step = session.profile_setup_step + 1

    if question is not None:
        updated = session.model_copy(update={"user_context": context, "profile_setup_step": next_step})
        return updated, question

    updated = session.model_copy(
        update={"user_context": context, "profile_setup_step": next_step, "profile_complete": True}
    )
    return updated, PROFILE_COMPLETE_MESSAGE
