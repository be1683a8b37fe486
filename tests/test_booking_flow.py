"""Integration tests: merger + lifecycle manager + backend + sessions together."""

import asyncio

import pytest

from slotbook.backend.memory import InMemoryBackend
from slotbook.errors import SlotUnavailableError
from slotbook.scheduling.lifecycle import ReservationLifecycleManager
from slotbook.schemas.reservation_schema import UserRole
from slotbook.schemas.slot_schema import ReservationStatus, TimeRange
from slotbook.sessions import ClientSession, ProviderSession
from tests.conftest import DAY, fixed_clock, make_config, make_window, wait_until

QUARTERS = [("08:00", "08:15"), ("08:15", "08:30"), ("08:30", "08:45"), ("08:45", "09:00")]


async def single_provider_backend() -> InMemoryBackend:
    backend = InMemoryBackend()
    backend.add_user("client1", "client1", UserRole.CLIENT)
    backend.add_user("provider1", "provider1", UserRole.PROVIDER)
    backend.add_provider("provider1", "Provider A")
    return backend


class TestEndToEndHoldExpiry:
    """Provider A opens 08:00-09:00; a client holds 08:15-08:30 and lets it lapse."""

    @pytest.mark.asyncio
    async def test_hold_then_expire(self):
        backend = await single_provider_backend()
        provider = ProviderSession(backend, await backend.login("provider1", "provider1"))
        published = await provider.publish_availability(DAY, "08:00", "09:00")
        assert published["success"] is True

        client = ClientSession(
            backend,
            await backend.login("client1", "client1"),
            config=make_config(hold_duration_seconds=3, tick_interval_seconds=0.001),
            clock=fixed_clock,
        )

        before = (await client.available_slots(DAY))["slots"]
        assert [(s["start"], s["end"]) for s in before] == QUARTERS
        assert all(s["status"] == "available" for s in before)
        assert all(s["provider_ids"] == ["provider1"] for s in before)

        held = await client.hold_slot(DAY, "08:15", "08:30")
        assert held["success"] is True

        during = (await client.available_slots(DAY))["slots"]
        assert [s["status"] for s in during] == ["available", "reserved", "available", "available"]

        await wait_until(lambda: bool(client.notices))
        after = (await client.available_slots(DAY))["slots"]
        assert [s["status"] for s in after] == ["available"] * 4
        assert after[1]["provider_ids"] == ["provider1"]
        client.close()

    @pytest.mark.asyncio
    async def test_manual_ticks_release_slot(self):
        backend = await single_provider_backend()
        await backend.put_availability("provider1", make_window("08:00", "09:00"))
        manager = ReservationLifecycleManager(
            backend, config=make_config(hold_duration_seconds=4), clock=fixed_clock
        )
        span = TimeRange(start="08:15", end="08:30")
        hold = await manager.create_hold("client1", span, DAY)

        for expected in (3, 2, 1):
            assert (await manager.tick(hold.id)).timer == expected
        assert (await manager.tick(hold.id)).status == ReservationStatus.EXPIRED

        slots = await manager.available_slots(DAY)
        assert all(s.status == ReservationStatus.AVAILABLE for s in slots)
        manager.close()


class TestTwoProviderPartialReservation:
    @pytest.mark.asyncio
    async def test_slot_stays_available_with_remaining_provider(self, backend, manager, other_manager):
        await backend.put_availability("provider1", make_window("08:00", "08:15"))
        await backend.put_availability("provider2", make_window("08:00", "08:15"))
        span = TimeRange(start="08:00", end="08:15")

        first = await manager.create_hold("client1", span, DAY, provider_filter="provider1")
        await manager.confirm(first.id)

        [slot] = await other_manager.available_slots(DAY)
        assert slot.status == ReservationStatus.AVAILABLE
        assert slot.provider_ids == ["provider2"]

        second = await other_manager.create_hold("client2", span, DAY)
        assert second.provider_id == "provider2"

        [slot] = await manager.available_slots(DAY)
        assert slot.status == ReservationStatus.BOOKED
        assert slot.provider_ids == []


class TestConcurrentHolds:
    @pytest.mark.asyncio
    async def test_only_one_of_simultaneous_holds_wins(self, backend, manager, other_manager):
        span = TimeRange(start="08:15", end="08:30")
        results = await asyncio.gather(
            manager.create_hold("client1", span, DAY),
            other_manager.create_hold("client2", span, DAY),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, SlotUnavailableError)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert len(await backend.list_reservations(DAY)) == 1


class TestProviderConfirmsDuringHold:
    @pytest.mark.asyncio
    async def test_booking_survives_client_timer(self, backend):
        client = ClientSession(
            backend,
            await backend.login("client1", "client1"),
            config=make_config(hold_duration_seconds=5, tick_interval_seconds=0.001),
            clock=fixed_clock,
        )
        provider = ProviderSession(backend, await backend.login("provider1", "provider1"))

        held = await client.hold_slot(DAY, "08:15", "08:30")
        reservation_id = held["reservation"]["id"]
        confirmed = await provider.confirm_reservation(reservation_id)
        assert confirmed["success"] is True

        await wait_until(lambda: not client.manager.has_timer(reservation_id))
        assert client.notices == []
        assert client.manager.get(reservation_id).status == ReservationStatus.BOOKED
        [stored] = await backend.list_reservations(DAY)
        assert stored.status == ReservationStatus.BOOKED
        client.close()
