"""Tests for the REST backend against an httpx MockTransport fake of the API."""

import json

import httpx
import pytest
import pytest_asyncio

from slotbook.backend.http import HttpBackend
from slotbook.backend.memory import InMemoryBackend
from slotbook.errors import (
    AuthError,
    NetworkError,
    ProviderNotFoundError,
    ReservationNotFoundError,
    SlotUnavailableError,
)
from slotbook.scheduling.lifecycle import ReservationLifecycleManager
from slotbook.schemas.availability_schema import AvailabilityWindow
from slotbook.schemas.reservation_schema import Reservation
from slotbook.schemas.slot_schema import ReservationStatus, TimeRange
from tests.conftest import DAY, fixed_clock, make_config, make_reservation, make_window, seed_backend

BASE_URL = "http://testserver/api"


def make_api(store: InMemoryBackend, seen: list):
    """Route requests onto ``store`` the way the booking REST API does."""

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        parts = request.url.path.split("/")[2:]  # drop "" and "api"
        body = json.loads(request.content) if request.content else None
        method = request.method
        try:
            if parts == ["providers"] and method == "GET":
                providers = await store.list_providers()
                return httpx.Response(200, json=[p.model_dump(by_alias=True, mode="json") for p in providers])

            if parts[:1] == ["providers"] and parts[2:3] == ["availability"]:
                provider_id = parts[1]
                if method == "GET":
                    windows = await store.get_availability(provider_id)
                elif method == "POST":
                    windows = await store.put_availability(
                        provider_id, AvailabilityWindow.model_validate(body)
                    )
                else:
                    windows = await store.delete_availability(provider_id, parts[3])
                return httpx.Response(200, json=[w.model_dump(by_alias=True, mode="json") for w in windows])

            if parts == ["reservations"]:
                if method == "GET":
                    found = await store.list_reservations(request.url.params.get("date"))
                    return httpx.Response(200, json={"reservations": [r.to_payload() for r in found]})
                created = await store.create_reservation(Reservation.model_validate(body))
                return httpx.Response(201, json={"reservation": created.to_payload()})

            if parts[:1] == ["reservations"]:
                if method == "PATCH":
                    updated = await store.update_reservation(parts[1], body)
                    return httpx.Response(200, json={"reservation": updated.to_payload()})
                await store.delete_reservation(parts[1])
                return httpx.Response(204)

            if parts == ["auth", "login"]:
                user = await store.login(body["name"], body["password"])
                return httpx.Response(200, json={"user": user.model_dump(by_alias=True, mode="json")})
        except AuthError:
            return httpx.Response(401, json={"message": "Invalid credentials"})
        except (ReservationNotFoundError, ProviderNotFoundError):
            return httpx.Response(404, json={"message": "Not found"})
        except SlotUnavailableError:
            return httpx.Response(409, json={"message": "Slot already taken"})
        return httpx.Response(404)

    return handler


@pytest_asyncio.fixture
async def api():
    store = await seed_backend(InMemoryBackend())
    seen: list = []
    client = httpx.AsyncClient(transport=httpx.MockTransport(make_api(store, seen)), base_url=BASE_URL)
    backend = HttpBackend(client=client)
    yield backend, store, seen
    await backend.aclose()


def backend_returning(handler) -> HttpBackend:
    return HttpBackend(
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    )


class TestProvidersAndAvailability:
    @pytest.mark.asyncio
    async def test_list_providers(self, api):
        backend, _, seen = api
        providers = await backend.list_providers()

        assert [p.id for p in providers] == ["provider1", "provider2"]
        assert providers[0].window_for(DAY).start == "08:00"
        assert seen[0].url.path == "/api/providers"

    @pytest.mark.asyncio
    async def test_put_and_delete_availability(self, api):
        backend, store, seen = api
        windows = await backend.put_availability(
            "provider1", make_window("10:00", "12:00", day="2024-06-02")
        )
        assert [w.date for w in windows] == [DAY, "2024-06-02"]
        assert json.loads(seen[-1].content) == {
            "date": "2024-06-02", "timezone": "UTC", "start": "10:00", "end": "12:00",
        }

        windows = await backend.delete_availability("provider1", DAY)
        assert [w.date for w in windows] == ["2024-06-02"]
        assert seen[-1].url.path == f"/api/providers/provider1/availability/{DAY}"
        assert [w.date for w in await store.get_availability("provider1")] == ["2024-06-02"]

    @pytest.mark.asyncio
    async def test_unknown_provider_maps_to_not_found(self, api):
        backend, _, _ = api
        with pytest.raises(ProviderNotFoundError):
            await backend.get_availability("provider9")


class TestReservations:
    @pytest.mark.asyncio
    async def test_create_list_update_delete(self, api):
        backend, store, seen = api
        draft = make_reservation("08:00", "08:15")
        draft.timer = 30

        created = await backend.create_reservation(draft)
        sent = json.loads(seen[-1].content)
        assert "timer" not in sent
        assert "id" not in sent
        assert sent["clientId"] == "client1"
        assert created.id.startswith("RES-")

        listed = await backend.list_reservations(DAY)
        assert [r.id for r in listed] == [created.id]
        assert seen[-1].url.params["date"] == DAY

        updated = await backend.update_reservation(created.id, {"status": ReservationStatus.BOOKED})
        assert updated.status == ReservationStatus.BOOKED
        assert json.loads(seen[-1].content) == {"status": "booked"}

        await backend.delete_reservation(created.id)
        assert await store.list_reservations() == []

    @pytest.mark.asyncio
    async def test_conflict_maps_to_slot_unavailable(self, api):
        backend, _, _ = api
        await backend.create_reservation(make_reservation("08:00", "08:15"))
        with pytest.raises(SlotUnavailableError) as exc_info:
            await backend.create_reservation(make_reservation("08:00", "08:15", client_id="client2"))
        assert exc_info.value.user_message == "This slot was just taken, please choose another."

    @pytest.mark.asyncio
    async def test_missing_reservation(self, api):
        backend, _, _ = api
        with pytest.raises(ReservationNotFoundError):
            await backend.delete_reservation("RES-MISSING")

    @pytest.mark.asyncio
    async def test_wrapped_slot_is_unwrapped(self):
        async def handler(request):
            return httpx.Response(200, json={"reservations": [{
                "id": "RES-1",
                "clientId": "client1",
                "providerId": "provider1",
                "date": DAY,
                "slot": [{"start": "08:00", "end": "08:15"}],
                "status": "booked",
            }]})

        backend = backend_returning(handler)
        [reservation] = await backend.list_reservations()
        assert reservation.slot == TimeRange(start="08:00", end="08:15")
        await backend.aclose()


class TestLogin:
    @pytest.mark.asyncio
    async def test_login(self, api):
        backend, _, _ = api
        user = await backend.login("provider2", "provider2")
        assert user.id == "provider2"
        assert user.token

    @pytest.mark.asyncio
    async def test_bad_credentials(self, api):
        backend, _, _ = api
        with pytest.raises(AuthError):
            await backend.login("provider2", "nope")


class TestTransportFailures:
    @pytest.mark.asyncio
    async def test_server_error(self):
        backend = backend_returning(lambda request: httpx.Response(500))
        with pytest.raises(NetworkError, match="500"):
            await backend.list_providers()
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = backend_returning(handler)
        with pytest.raises(NetworkError, match="connection refused"):
            await backend.list_reservations()
        await backend.aclose()


class TestLifecycleOverHttp:
    @pytest.mark.asyncio
    async def test_hold_and_confirm(self, api):
        backend, store, _ = api
        manager = ReservationLifecycleManager(backend, config=make_config(), clock=fixed_clock)

        hold = await manager.create_hold("client1", TimeRange(start="08:15", end="08:30"), DAY)
        await manager.confirm(hold.id)

        [stored] = await store.list_reservations(DAY)
        assert stored.status == ReservationStatus.BOOKED
        assert stored.provider_id == "provider1"
        manager.close()

    @pytest.mark.asyncio
    async def test_hold_on_taken_slot_rejected(self, api):
        backend, store, _ = api
        await store.create_reservation(make_reservation("08:15", "08:30", client_id="client2"))
        manager = ReservationLifecycleManager(backend, config=make_config(), clock=fixed_clock)

        with pytest.raises(SlotUnavailableError):
            await manager.create_hold("client1", TimeRange(start="08:15", end="08:30"), DAY)
        manager.close()
