"""
Offline console demo: drives the real scheduling engine against a seeded
in-memory backend. No server, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario expiry
    python console_demo.py --scenario contention
"""

import argparse
import asyncio
import dataclasses
from datetime import date, timedelta

from slotbook.backend.fixtures import seed_demo
from slotbook.backend.memory import InMemoryBackend
from slotbook.config import settings
from slotbook.schemas.reservation_schema import User
from slotbook.sessions import ActionResult, ClientSession, ProviderSession, login

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

STATUS_COLOURS = {
    "available": GREEN,
    "reserved": YELLOW,
    "booked": RED,
    "disabled": DIM,
}


def say(actor: str, text: str) -> None:
    print(f"{BLUE}{BOLD}[{actor}]{RESET} {text}")


def system_log(text: str) -> None:
    print(f"{DIM}  >> {text}{RESET}")


def show_result(actor: str, result: ActionResult) -> None:
    colour = GREEN if result.get("success") else RED
    say(actor, f"{colour}{result.get('message', '')}{RESET}")


def show_slots(result: ActionResult, first: str = "08:00", last: str = "11:00") -> None:
    """Print one line per slot between ``first`` and ``last``."""
    for slot in result.get("slots", []):
        if not first <= slot["start"] < last:
            continue
        colour = STATUS_COLOURS.get(slot["status"], "")
        providers = ", ".join(slot["provider_ids"]) or "-"
        print(f"    {slot['start']}-{slot['end']}  {colour}{slot['status']:<9}{RESET}  {DIM}{providers}{RESET}")


async def client_session(backend: InMemoryBackend, name: str, config=None) -> ClientSession:
    result = await login(backend, name, name)
    show_result(name, result)
    return ClientSession(backend, User.model_validate(result["user"]), config=config)


async def provider_session(backend: InMemoryBackend, name: str) -> ProviderSession:
    result = await login(backend, name, name)
    show_result(name, result)
    return ProviderSession(backend, User.model_validate(result["user"]))


async def booking_scenario(backend: InMemoryBackend, day: str) -> None:
    """Hold a slot both providers offer, pick a provider, confirm."""
    client = await client_session(backend, "client1")
    providers = await client.list_providers()
    system_log(f"Providers: {', '.join(f'{p.name} ({p.id})' for p in providers)}")

    overview = await client.availability_overview()
    show_result("client1", overview)
    for entry in overview.get("days", []):
        system_log(f"{entry['date']}: {entry['available_slots']} free slots")

    slots = await client.available_slots(day)
    show_result("client1", slots)
    show_slots(slots)

    held = await client.hold_slot(day, "10:00", "10:15")
    show_result("client1", held)
    reservation_id = held["reservation"]["id"]
    system_log(f"Hold {reservation_id} expires at {held['reservation']['expiration_time']} UTC")

    show_result("client1", await client.confirm(reservation_id))
    show_result("client1", await client.choose_provider(reservation_id, "provider2"))
    show_result("client1", await client.confirm(reservation_id))

    provider = await provider_session(backend, "provider2")
    for reservation in await provider.reservations(day):
        system_log(
            f"provider2 sees {reservation.id}: {reservation.slot.start}-{reservation.slot.end} "
            f"{reservation.status.value}"
        )

    client.select_provider("provider2")
    slots = await client.available_slots(day)
    show_slots(slots, "09:45", "10:30")
    client.close()


async def expiry_scenario(backend: InMemoryBackend, day: str) -> None:
    """Hold a slot with a short countdown and let it lapse."""
    config = dataclasses.replace(settings.scheduling, hold_duration_seconds=3, tick_interval_seconds=0.5)
    client = await client_session(backend, "client1", config=config)

    held = await client.hold_slot(day, "08:30", "08:45")
    show_result("client1", held)
    show_slots(await client.available_slots(day), "08:15", "09:00")

    system_log(f"Waiting {config.hold_duration_seconds}s for the hold to expire...")
    while not client.notices:
        await asyncio.sleep(config.tick_interval_seconds)
    for notice in client.notices:
        say("client1", f"{YELLOW}{notice}{RESET}")
    show_slots(await client.available_slots(day), "08:15", "09:00")
    client.close()


async def contention_scenario(backend: InMemoryBackend, day: str) -> None:
    """Two clients race for the same slot; exactly one hold succeeds."""
    first = await client_session(backend, "client1")
    second = await client_session(backend, "client2")

    results = await asyncio.gather(
        first.hold_slot(day, "08:45", "09:00"),
        second.hold_slot(day, "08:45", "09:00"),
    )
    for name, result in zip(("client1", "client2"), results):
        show_result(name, result)

    winner = next(r for r in results if r["success"])
    provider = await provider_session(backend, "provider1")
    show_result("provider1", await provider.confirm_reservation(winner["reservation"]["id"]))

    # A late retry by the losing client sees the booking
    retry = await second.hold_slot(day, "08:45", "09:00")
    show_result("client2", retry)
    show_slots(await second.available_slots(day), "08:30", "09:15")
    first.close()
    second.close()


SCENARIOS = {
    "booking": booking_scenario,
    "expiry": expiry_scenario,
    "contention": contention_scenario,
}


async def run_scenario(scenario: str) -> None:
    backend = InMemoryBackend()
    today = date.today()
    await seed_demo(backend, today=today)
    day = (today + timedelta(days=2)).isoformat()

    print()
    print(f"{BOLD}{'=' * 60}{RESET}")
    print(f"{BOLD}  SLOTBOOK - Scenario: {scenario}{RESET}")
    print(f"{BOLD}  Date: {day}{RESET}")
    print(f"{BOLD}{'=' * 60}{RESET}")
    print()

    await SCENARIOS[scenario](backend, day)

    print(f"\n{BOLD}{'=' * 60}{RESET}")
    print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
    print(f"{DIM}  Reservations on {day}: {len(await backend.list_reservations(day))}{RESET}")
    print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(SCENARIOS),
        default="booking",
        help="Which pre-scripted scenario to play",
    )
    args = parser.parse_args()
    asyncio.run(run_scenario(args.scenario))


if __name__ == "__main__":
    main()
