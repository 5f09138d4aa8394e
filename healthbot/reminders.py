from __future__ import annotations

from typing import Any, Dict, List

from .state import ProfileContext

VACCINE_SCHEDULE: Dict[int, List[str]] = {
    0: ["BCG", "OPV-0", "Hepatitis B"],
    6: ["OPV-1", "Pentavalent-1", "Rotavirus"],
    9: ["MMR-1"],
    10: ["OPV-2", "Pentavalent-2"],
    14: ["OPV-3", "Pentavalent-3"],
    16: ["MMR-2"],
    18: ["DPT Booster"],
}


def vaccines_by_age(age: int) -> List[str]:
    return list(VACCINE_SCHEDULE.get(age, []))


def next_checkup(age: int) -> str:
    if age < 1:
        return "Monthly"
    if age < 2:
        return "Every 3 months"
    if age < 5:
        return "Every 6 months"
    return "Yearly"


def vaccination_reminders(context: ProfileContext) -> List[Dict[str, Any]]:
    """Reminders for children whose age lands on a scheduled dose."""
    reminders: List[Dict[str, Any]] = []
    for child in context.children or ():
        vaccines = vaccines_by_age(child.age)
        if not vaccines:
            continue
        reminders.append(
            {
                "child": child.name,
                "age": child.age,
                "vaccines": vaccines,
                "nextCheckup": next_checkup(child.age),
            }
        )
    return reminders


def is_profile_complete(context: ProfileContext) -> bool:
    return bool(context.name and context.age and context.location)
