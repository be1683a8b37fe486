"""Typed errors raised by the scheduling engine and its backends.

Every error carries a ``user_message`` suitable for display, so session
facades can turn failures into results without inspecting exception types.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all booking engine errors."""

    user_message = "Something went wrong, please try again."

    def __init__(self, message: str = "", user_message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InvalidRangeError(BookingError, ValueError):
    """Malformed interval bounds given to the interval generator."""

    user_message = "The time range is not valid."


class SlotUnavailableError(BookingError):
    """The slot's authoritative status is no longer available."""

    user_message = "This slot was just taken, please choose another."


class InvalidProviderError(BookingError):
    """The chosen provider cannot serve the held slot."""

    user_message = "Please choose one of the providers offered for this slot."


class InvalidTransitionError(BookingError):
    """The requested operation is not allowed in the reservation's current status."""

    user_message = "This reservation can no longer be changed."


class ReservationNotFoundError(BookingError):
    """No reservation exists with the given id."""

    user_message = "This reservation no longer exists."


class ProviderNotFoundError(BookingError):
    """No provider exists with the given id."""

    user_message = "Provider not found."


class NetworkError(BookingError):
    """A persistence call failed in transport."""

    user_message = "We couldn't reach the server. Please retry."


class AuthError(BookingError):
    """Invalid credentials at login."""

    user_message = "Invalid name or password."


class MixedTimezoneError(BookingError):
    """Providers merged onto one slot grid publish in different timezones."""

    user_message = "These providers work in different timezones. Please choose one provider."
