"""Development helpers for populating fake profiles, events and RSVPs."""

from __future__ import annotations

import random
from datetime import timedelta
from typing import TYPE_CHECKING

from faker import Faker

from . import events as event_store
from .catalog import BUILDINGS, DIETARY_TAGS, FOOD_TEMPERATURES, ROLE_FACULTY, ROLE_STUDENT
from .errors import AlreadyRsvpd, CapacityExceeded
from .schemas import EventFormData, FoodOffering, UserProfile
from .utils import utcnow

if TYPE_CHECKING:
    from .client import StoreClient

SEED_PASSWORD = "sparkbytes"

_dishes = [
    "Cheese Pizza",
    "Veggie Wraps",
    "Bagels",
    "Fruit Platter",
    "Chicken Tikka",
    "Falafel Bowls",
    "Sushi Rolls",
    "Cookies",
    "Pasta Salad",
    "Burritos",
    "Dumplings",
    "Samosas",
]
_event_types = [
    "Lunch Talk",
    "Study Break",
    "Club Meeting",
    "Seminar Leftovers",
    "Info Session",
    "Workshop",
    "Open House",
]
_quantities = ["Small tray", "Half tray", "Full tray", "2 boxes", "About 20 servings"]


def seed_fake_data(
    client: "StoreClient",
    *,
    profile_count: int = 12,
    event_count: int = 8,
    max_rsvps_per_event: int = 5,
    faculty_percentage: int = 25,
) -> dict[str, int]:
    """Populate the database with synthetic profiles and events."""
    if profile_count < 1:
        raise ValueError("profile_count must be >= 1")
    if event_count < 0:
        raise ValueError("event_count must be >= 0")
    if max_rsvps_per_event < 0:
        raise ValueError("max_rsvps_per_event must be >= 0")
    if not 0 <= faculty_percentage <= 100:
        raise ValueError("faculty_percentage must be between 0 and 100")

    fake = Faker()
    stats = {"profiles": 0, "faculty": 0, "events": 0, "rsvps": 0}

    profiles = []
    for index in range(profile_count):
        is_faculty = index == 0 or random.randint(1, 100) <= faculty_percentage
        profiles.append(_create_profile(client, fake, index, faculty=is_faculty))
        stats["profiles"] += 1
        stats["faculty"] += int(is_faculty)

    faculty = [profile for profile in profiles if profile.is_faculty]
    for _ in range(event_count):
        organizer = random.choice(faculty)
        event = event_store.create_event(
            client, _event_form(fake, organizer), organizer.id
        )
        stats["events"] += 1
        stats["rsvps"] += _create_rsvps(client, event.id, profiles, max_rsvps_per_event)

    return stats


def _create_profile(
    client: "StoreClient", fake: Faker, index: int, *, faculty: bool
) -> UserProfile:
    first, last = fake.first_name(), fake.last_name()
    email = f"{first}.{last}.{index}@{client.settings.email_domain}".lower()
    return client.auth.sign_up(
        email=email,
        password=SEED_PASSWORD,
        full_name=f"{first} {last}",
        role=ROLE_FACULTY if faculty else ROLE_STUDENT,
        faculty_code=client.settings.faculty_code if faculty else None,
    )


def _food_offering(fake: Faker) -> FoodOffering:
    tags = random.sample(DIETARY_TAGS, k=random.randint(0, 3))
    return FoodOffering(
        name=random.choice(_dishes),
        dietary_tags=[tag.id for tag in tags],
        description=fake.sentence() if random.random() < 0.5 else None,
        quantity=random.choice(_quantities),
        temperature=random.choice(FOOD_TEMPERATURES),
    )


def _event_form(fake: Faker, organizer: UserProfile) -> EventFormData:
    building = random.choice(BUILDINGS)
    # Mix of events already underway and ones starting within a few hours.
    start_time = utcnow() + timedelta(minutes=random.randint(-60, 240))
    end_time = start_time + timedelta(minutes=random.choice([60, 90, 120, 180]))
    return EventFormData(
        title=f"{fake.word().title()} {random.choice(_event_types)}",
        start_time=start_time,
        end_time=end_time,
        building_id=building.id,
        description=fake.paragraph(nb_sentences=2),
        food_offerings=[_food_offering(fake) for _ in range(random.randint(1, 3))],
        organizer_name=organizer.full_name,
        organizer_email=organizer.email,
        max_attendees=random.choice([None, 10, 25, 50]),
        is_public=random.random() >= 0.1,
    )


def _create_rsvps(
    client: "StoreClient",
    event_id: str,
    profiles: list[UserProfile],
    max_rsvps: int,
) -> int:
    if max_rsvps <= 0:
        return 0
    total = random.randint(0, min(max_rsvps, len(profiles)))
    created = 0
    for profile in random.sample(profiles, k=total):
        try:
            event_store.rsvp(client, event_id, profile.id)
        except (AlreadyRsvpd, CapacityExceeded):
            continue
        created += 1
    return created
