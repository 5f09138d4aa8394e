from __future__ import annotations

import re
from typing import Any, Dict, List

from .state import PROFILE_FIELDS, Child, ProfileContext

NAME_MAX_LENGTH = 50
LOCATION_MAX_LENGTH = 30

AGE_PATTERN = re.compile(r"\b(\d{1,2})\s*(years?|yrs?)?\b", re.IGNORECASE)
CHILD_PATTERN = re.compile(r"(\w+)[-\s](\d+)")
CHILD_LIST_PATTERN = re.compile(r"\s*\w+[-\s]\d+(\s*,\s*\w+[-\s]\d+)*\s*")
CHILD_KEYWORDS = ("child", "son", "daughter")
CONDITION_KEYWORDS = ("diabetes", "malaria", "asthma")


def default_profile() -> ProfileContext:
    return ProfileContext()


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def merge_profile(current: ProfileContext, update: Dict[str, Any]) -> ProfileContext:
    """Return a new profile with ``update`` applied to fields that are still unset.

    Populated fields are never overwritten.
    """
    changes: Dict[str, Any] = {}
    for field in PROFILE_FIELDS:
        if field not in update or _is_empty(update[field]):
            continue
        if not _is_empty(getattr(current, field)):
            continue
        changes[field] = update[field]
    if not changes:
        return current
    return ProfileContext.model_validate({**current.model_dump(), **changes})


def parse_age(message: str) -> int | None:
    match = AGE_PATTERN.search(message)
    if not match:
        return None
    return int(match.group(1))


def parse_children(message: str) -> List[Child]:
    return [Child(name=match.group(1), age=int(match.group(2))) for match in CHILD_PATTERN.finditer(message)]


def _mentions_children(message: str) -> bool:
    lowered = message.lower()
    if any(keyword in lowered for keyword in CHILD_KEYWORDS):
        return True
    # A bare "Aarav-8, Anika-3" answer to the children question.
    return CHILD_LIST_PATTERN.fullmatch(message) is not None


def extract_profile_info(message: str, context: ProfileContext) -> ProfileContext:
    """Fill in missing profile fields from a free-text intake reply.

    A short reply arriving while the name is unknown is taken as the name and
    nothing else is read from it. Otherwise every rule runs, each guarded only
    by its own field being empty, so one reply can fill several fields.
    """
    text = message or ""
    trimmed = text.strip()
    lowered = text.lower()

    # A short reply while the name is unknown sets the name and nothing else.
    # The cost: "I have asthma" sent before any name never fills conditions.
    # Running every rule here would also turn the name into the location.
    if _is_empty(context.name) and len(trimmed) < NAME_MAX_LENGTH:
        return merge_profile(context, {"name": trimmed})

    update: Dict[str, Any] = {}

    if context.age is None:
        age = parse_age(text)
        if age is not None:
            update["age"] = age

    if _is_empty(context.children) and _mentions_children(text):
        children = parse_children(text)
        if children:
            update["children"] = children

    if _is_empty(context.conditions) and any(keyword in lowered for keyword in CONDITION_KEYWORDS):
        update["conditions"] = trimmed

    if _is_empty(context.location) and len(text) < LOCATION_MAX_LENGTH:
        update["location"] = trimmed

    return merge_profile(context, update)
