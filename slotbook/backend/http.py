"""
HTTP client for the booking REST API.

Every call is async and fallible. Transport failures surface as
NetworkError; HTTP 401, 404 and 409 map onto AuthError, the not-found
errors and SlotUnavailableError so callers see the same typed errors as
with the in-memory backend.
"""

import logging
from typing import Any, Optional

import httpx

from slotbook.backend.base import reservation_fields_payload
from slotbook.config import BackendConfig, settings
from slotbook.errors import (
    AuthError,
    BookingError,
    NetworkError,
    ProviderNotFoundError,
    ReservationNotFoundError,
    SlotUnavailableError,
)
from slotbook.schemas.availability_schema import AvailabilityWindow, Provider
from slotbook.schemas.reservation_schema import Reservation, User
from slotbook.utils import format_date

logger = logging.getLogger(__name__)


class HttpBackend:
    """Async REST client implementing the BookingBackend operations."""

    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        config = config or settings.backend
        self._client = client or httpx.AsyncClient(
            base_url=config.api_base_url,
            timeout=config.timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpBackend":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        not_found: type[BookingError] = ReservationNotFoundError,
        **kwargs: Any,
    ) -> Any:
        """Send a request and decode JSON, translating failures to typed errors."""
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("API request failed: %s %s -> %s", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code == 401:
            raise AuthError(f"{method} {path} unauthorized")
        if resp.status_code == 404:
            raise not_found(f"{method} {path} not found")
        if resp.status_code == 409:
            raise SlotUnavailableError(f"{method} {path} conflict")
        if resp.status_code >= 400:
            logger.error("API error: %s %s -> %s", method, path, resp.status_code)
            raise NetworkError(f"{method} {path} returned {resp.status_code}")

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ------------------------------------------------------------------ #
    # Providers and availability
    # ------------------------------------------------------------------ #

    async def list_providers(self) -> list[Provider]:
        data = await self._request("GET", "/providers", not_found=ProviderNotFoundError)
        return [Provider.model_validate(item) for item in data or []]

    async def get_availability(self, provider_id: str) -> list[AvailabilityWindow]:
        data = await self._request(
            "GET", f"/providers/{provider_id}/availability", not_found=ProviderNotFoundError
        )
        windows = [AvailabilityWindow.model_validate(item) for item in data or []]
        return sorted(windows, key=lambda w: w.date)

    async def put_availability(
        self, provider_id: str, window: AvailabilityWindow
    ) -> list[AvailabilityWindow]:
        body = window.model_dump(by_alias=True, include={"date", "timezone", "start", "end"})
        data = await self._request(
            "POST",
            f"/providers/{provider_id}/availability",
            not_found=ProviderNotFoundError,
            json=body,
        )
        return [AvailabilityWindow.model_validate(item) for item in data or []]

    async def delete_availability(self, provider_id: str, day: str) -> list[AvailabilityWindow]:
        data = await self._request(
            "DELETE",
            f"/providers/{provider_id}/availability/{format_date(day)}",
            not_found=ProviderNotFoundError,
        )
        return [AvailabilityWindow.model_validate(item) for item in data or []]

    # ------------------------------------------------------------------ #
    # Reservations
    # ------------------------------------------------------------------ #

    async def list_reservations(self, day: Optional[str] = None) -> list[Reservation]:
        params = {"date": format_date(day)} if day is not None else None
        data = await self._request("GET", "/reservations", params=params)
        return [Reservation.model_validate(item) for item in (data or {}).get("reservations", [])]

    async def create_reservation(self, reservation: Reservation) -> Reservation:
        body = reservation.to_payload()
        body.pop("id", None)
        data = await self._request("POST", "/reservations", json=body)
        return Reservation.model_validate(data["reservation"])

    async def update_reservation(self, reservation_id: str, fields: dict[str, Any]) -> Reservation:
        data = await self._request(
            "PATCH", f"/reservations/{reservation_id}", json=reservation_fields_payload(fields)
        )
        return Reservation.model_validate(data["reservation"])

    async def delete_reservation(self, reservation_id: str) -> None:
        await self._request("DELETE", f"/reservations/{reservation_id}")

    # ------------------------------------------------------------------ #
    # Auth
    # ------------------------------------------------------------------ #

    async def login(self, name: str, password: str) -> User:
        data = await self._request(
            "POST", "/auth/login", json={"name": name, "password": password}
        )
        return User.model_validate(data["user"])
