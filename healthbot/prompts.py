from __future__ import annotations

import re
from typing import List

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from .state import ProfileContext

PERSONA_PROMPT = (
    "You are Swasthya HealthBot, a helpful health assistant for rural India. "
    "Provide accurate health information in simple language. Tailor responses to the user's context. "
    "Avoid repetitive greetings. Sound confident and trustworthy."
)
CONTEXT_FOOTER = "Use this context to personalize your response when relevant."
CLOSING_PROMPT = "Keep responses clear, practical, and focused on actionable advice."

SYMPTOM_BLOCK = (
    "<strong>Symptom Information</strong>\n\n"
    "Common symptoms vary by disease. E.g., Dengue: High fever, headache, muscle pain; "
    "Malaria: Fever with chills, fatigue; Typhoid: Prolonged fever, stomach pain."
)
PREVENTION_BLOCK = (
    "<strong>Prevention Methods</strong>\n\n"
    "• Use mosquito nets & repellents\n• Wear long sleeves\n• Avoid stagnant water\n• Vaccinations"
)
VACCINATION_BLOCK = (
    "<strong>Vaccination Info</strong>\n\n"
    "• Newborns: BCG, polio, hepatitis B\n• 6 weeks: Pentavalent, rotavirus\n• Children: Measles, DPT, typhoid"
)
GENERAL_BLOCK = (
    "<strong>Health Assistance</strong>\n\n"
    "I can help with symptoms, prevention, vaccines, and health alerts. What would you like to know?"
)

BOLD_PATTERN = re.compile(r"\*\*(.*?)\*\*")
BLANK_LINES_PATTERN = re.compile(r"\n\s*\n")


def build_system_prompt(context: ProfileContext | None) -> str:
    system = PERSONA_PROMPT
    if context is not None and not context.is_empty():
        lines = ["User Context:"]
        if context.name:
            lines.append(f"- Name: {context.name}")
        if context.age:
            lines.append(f"- Age: {context.age}")
        if context.location:
            lines.append(f"- Location: {context.location}")
        if context.children:
            children = ", ".join(f"{child.name} ({child.age} years)" for child in context.children)
            lines.append(f"- Children: {children}")
        if context.conditions:
            lines.append(f"- Conditions: {context.conditions}")
        system += "\n\n" + "\n".join(lines) + f"\n\n{CONTEXT_FOOTER}"
    return f"{system}\n\n{CLOSING_PROMPT}"


def build_personalized_prompt(message: str, context: ProfileContext | None) -> List[BaseMessage]:
    return [SystemMessage(content=build_system_prompt(context)), HumanMessage(content=message)]


def format_response(text: str) -> str:
    formatted = BOLD_PATTERN.sub(r"<strong>\1</strong>", text)
    formatted = BLANK_LINES_PATTERN.sub("\n\n", formatted)
    return formatted.strip()


def structured_fallback(message: str, context: ProfileContext | None) -> str:
    lowered = (message or "").lower()
    if "symptom" in lowered:
        response = SYMPTOM_BLOCK
    elif "prevent" in lowered or "malaria" in lowered:
        response = PREVENTION_BLOCK
    elif "vaccin" in lowered:
        response = VACCINATION_BLOCK
    else:
        response = GENERAL_BLOCK

    if context is not None and context.location:
        response += (
            f"\n\n<strong>Location Note:</strong> Since you're in {context.location}, "
            "consider local health advisories."
        )
    return response
