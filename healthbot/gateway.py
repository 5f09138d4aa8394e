from __future__ import annotations

import re
from typing import Any

from twilio.rest import Client

from .config import env_str

NON_DIGITS = re.compile(r"[^0-9]")

EMPTY_TWIML = "<Response></Response>"
ERROR_TWIML = "<Response><Message>Bot error occurred.</Message></Response>"


def normalize_sender(sender: str) -> str:
    """Turn a WhatsApp sender such as ``whatsapp:+91 98765-43210`` into a digits-only key."""
    return NON_DIGITS.sub("", sender or "")


class WhatsAppGateway:
    def __init__(self, client: Any, from_number: str) -> None:
        self.client = client
        self.from_number = from_number
        self.enabled = client is not None

    def send(self, to: str, body: str) -> Any:
        return self.client.messages.create(from_=self.from_number, to=to, body=body)


def get_whatsapp_gateway() -> WhatsAppGateway | None:
    account_sid = env_str("TWILIO_ACCOUNT_SID")
    auth_token = env_str("TWILIO_AUTH_TOKEN")
    if not account_sid or not auth_token:
        print("[Twilio] TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN not set; WhatsApp disabled.")
        return None
    return WhatsAppGateway(Client(account_sid, auth_token), env_str("TWILIO_WHATSAPP_NUMBER"))
