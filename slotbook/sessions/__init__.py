from slotbook.sessions.client import ClientSession, login
from slotbook.sessions.provider import ProviderSession
from slotbook.sessions.results import ActionResult

__all__ = ["ClientSession", "ProviderSession", "ActionResult", "login"]
