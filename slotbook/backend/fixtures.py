"""Demo data for the in-memory backend: two providers, two clients."""

from datetime import date, timedelta
from typing import Optional

from slotbook.backend.memory import InMemoryBackend
from slotbook.schemas.availability_schema import AvailabilityWindow
from slotbook.schemas.reservation_schema import Reservation, UserRole
from slotbook.schemas.slot_schema import ReservationStatus, TimeRange

DEMO_TIMEZONE = "America/Los_Angeles"

# (provider_id, day offset, start, end)
DEMO_AVAILABILITY: list[tuple[str, int, str, str]] = [
    ("provider1", 0, "08:00", "15:00"),
    ("provider1", 1, "08:00", "15:00"),
    ("provider1", 2, "08:00", "15:00"),
    ("provider1", 10, "08:00", "15:00"),
    ("provider2", 0, "09:00", "15:00"),
    ("provider2", 1, "08:00", "15:00"),
    ("provider2", 2, "10:00", "15:00"),
    ("provider2", 3, "08:00", "14:00"),
    ("provider2", 4, "08:00", "15:00"),
]

# (client_id, provider_id, day offset, start, end, status)
DEMO_RESERVATIONS: list[tuple[str, str, int, str, str, ReservationStatus]] = [
    ("client1", "provider1", 2, "08:15", "08:30", ReservationStatus.BOOKED),
    ("client2", "provider1", 2, "09:30", "09:45", ReservationStatus.RESERVED),
    ("client2", "provider1", 2, "10:30", "10:45", ReservationStatus.RESERVED),
]


async def seed_demo(backend: InMemoryBackend, today: Optional[date] = None) -> None:
    """Populate ``backend`` with demo users, availability and reservations."""
    today = today or date.today()

    for name, role in [
        ("client1", UserRole.CLIENT),
        ("client2", UserRole.CLIENT),
        ("provider1", UserRole.PROVIDER),
        ("provider2", UserRole.PROVIDER),
    ]:
        backend.add_user(name, name, role)

    backend.add_provider("provider1", "Provider A")
    backend.add_provider("provider2", "Provider B")

    for provider_id, offset, start, end in DEMO_AVAILABILITY:
        day = (today + timedelta(days=offset)).isoformat()
        await backend.put_availability(
            provider_id,
            AvailabilityWindow(date=day, start=start, end=end, timezone=DEMO_TIMEZONE),
        )

    for client_id, provider_id, offset, start, end, status in DEMO_RESERVATIONS:
        await backend.create_reservation(
            Reservation(
                client_id=client_id,
                provider_id=provider_id,
                date=(today + timedelta(days=offset)).isoformat(),
                slot=TimeRange(start=start, end=end),
                status=status,
                eligible_provider_ids=[provider_id],
            )
        )
