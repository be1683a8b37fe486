from slotbook.backend.base import BookingBackend, find_conflict
from slotbook.backend.http import HttpBackend
from slotbook.backend.memory import InMemoryBackend

__all__ = ["BookingBackend", "InMemoryBackend", "HttpBackend", "find_conflict"]
