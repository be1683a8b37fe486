"""Shared test fixtures and helpers."""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

import pytest
import pytest_asyncio

from slotbook.backend.memory import InMemoryBackend
from slotbook.config import SchedulingConfig
from slotbook.scheduling.lifecycle import ReservationLifecycleManager
from slotbook.schemas.availability_schema import AvailabilityWindow, Provider
from slotbook.schemas.reservation_schema import Reservation, UserRole
from slotbook.schemas.slot_schema import ReservationStatus, TimeRange

# Fixed "now": 2024-05-30 08:00 UTC. DAY is 48h ahead, SOON_DAY only 24h ahead.
NOW = datetime(2024, 5, 30, 8, 0, tzinfo=timezone.utc)
DAY = "2024-06-01"
SOON_DAY = "2024-05-31"


def fixed_clock() -> datetime:
    return NOW


def make_config(
    hold_duration_seconds: int = 5,
    tick_interval_seconds: float = 3600.0,
    lead_time_hours: int = 24,
) -> SchedulingConfig:
    """Scheduling config for tests. The default tick never fires on its own."""
    return SchedulingConfig(
        slot_step_minutes=15,
        lead_time_hours=lead_time_hours,
        hold_duration_seconds=hold_duration_seconds,
        tick_interval_seconds=tick_interval_seconds,
        default_timezone="UTC",
    )


def make_window(
    start: str,
    end: str,
    day: str = DAY,
    provider_id: Optional[str] = None,
    tz: str = "UTC",
) -> AvailabilityWindow:
    return AvailabilityWindow(provider_id=provider_id, date=day, start=start, end=end, timezone=tz)


def make_provider(provider_id: str, *windows: tuple[str, str], day: str = DAY, tz: str = "UTC") -> Provider:
    """Helper to create a Provider with one window per (start, end) pair on ``day``."""
    return Provider(
        id=provider_id,
        name=provider_id.title(),
        availability=[make_window(s, e, day, provider_id, tz) for s, e in windows],
    )


def make_reservation(
    start: str,
    end: str,
    provider_id: Optional[str] = "provider1",
    status: ReservationStatus = ReservationStatus.RESERVED,
    day: str = DAY,
    client_id: str = "client1",
    eligible: Optional[list[str]] = None,
    reservation_id: Optional[str] = None,
) -> Reservation:
    """Helper to create a Reservation with sensible defaults."""
    if eligible is None:
        eligible = [provider_id] if provider_id else []
    return Reservation(
        id=reservation_id,
        client_id=client_id,
        provider_id=provider_id,
        date=day,
        slot=TimeRange(start=start, end=end),
        status=status,
        eligible_provider_ids=eligible,
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the running loop until it holds or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


async def seed_backend(backend: InMemoryBackend) -> InMemoryBackend:
    """Two providers and users. provider1 open 08:00-10:00, provider2 09:00-11:00 on DAY."""
    backend.add_user("client1", "client1", UserRole.CLIENT)
    backend.add_user("client2", "client2", UserRole.CLIENT)
    backend.add_user("provider1", "provider1", UserRole.PROVIDER)
    backend.add_user("provider2", "provider2", UserRole.PROVIDER)
    backend.add_provider("provider1", "Provider A")
    backend.add_provider("provider2", "Provider B")
    await backend.put_availability("provider1", make_window("08:00", "10:00"))
    await backend.put_availability("provider2", make_window("09:00", "11:00"))
    return backend


@pytest.fixture
def config():
    return make_config()


@pytest_asyncio.fixture
async def backend():
    return await seed_backend(InMemoryBackend())


@pytest_asyncio.fixture
async def manager(backend, config):
    manager = ReservationLifecycleManager(backend, config=config, clock=fixed_clock)
    yield manager
    manager.close()


@pytest_asyncio.fixture
async def other_manager(backend, config):
    """A second client's session over the same backend."""
    manager = ReservationLifecycleManager(backend, config=config, clock=fixed_clock)
    yield manager
    manager.close()
