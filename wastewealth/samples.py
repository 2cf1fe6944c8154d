# wastewealth/samples.py
"""
Sample pickup requests used to seed an empty store.

A fresh install has no persisted requests, so the store fills itself with a
handful of plausible pending requests around Chandigarh. Field values are
pseudo-random; pass a seeded random.Random for reproducible output.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import List, Optional

from . import config
from .models import GeoLocation, PaymentStatus, PickupRequest, PickupType, RequestStatus, Urgency, WasteItem
from .utils import truncate_to_millis, utc_now

SAMPLE_NAMES = ["Emma Thompson", "Rajesh Kumar", "Priya Sharma", "Amit Singh", "Sarah Wilson"]

SAMPLE_ADDRESSES = [
    "789 Green Valley Apartments, Sector 22, Chandigarh",
    "456 Eco Heights, Sector 17, Chandigarh",
    "123 Sustainable Living Complex, Sector 34, Chandigarh",
    "321 Green Park Society, Sector 15, Chandigarh",
    "567 Environmental Plaza, Sector 43, Chandigarh",
]

# (latitude, longitude) of the sample addresses
SAMPLE_LOCATIONS = [
    (30.7333, 76.7794),
    (30.7398, 76.7827),
    (30.7145, 76.7730),
    (30.7515, 76.7645),
    (30.7196, 76.7518),
]

SAMPLE_WASTE = [
    ("Plastic", 15, "kg"),
    ("Paper", 25, "kg"),
    ("E-Waste", 8, "kg"),
    ("Metal", 12, "kg"),
    ("Glass", 20, "kg"),
]


def generate_sample_requests(
    count: int = config.SAMPLE_REQUEST_COUNT,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[PickupRequest]:
    """
    Generate pending sample requests.

    Args:
        count: Number of requests, capped at the number of sample profiles
        now: Creation timestamp for every sample (defaults to the current time)
        rng: Random source for amounts, distances, urgency and schedule

    Returns:
        List of pending, unpaid requests with equal created/updated timestamps
    """
    now = truncate_to_millis(now) if now else utc_now()
    rng = rng or random.Random()
    millis = int(now.timestamp() * 1000)

    samples: List[PickupRequest] = []
    for index in range(min(count, len(SAMPLE_NAMES))):
        name, quantity, unit = SAMPLE_WASTE[index]
        lat, lng = SAMPLE_LOCATIONS[index]
        samples.append(PickupRequest(
            request_id=f"sample_{index + 1}_{millis}",
            user_id=f"user_{index + 1}",
            user_name=SAMPLE_NAMES[index],
            user_rating=round(4.5 + rng.random() * 0.5, 1),
            waste_types=[WasteItem(name=name, quantity=quantity, unit=unit)],
            total_amount=round(200 + rng.random() * 500, 2),
            distance=round(1 + rng.random() * 5, 1),
            address=SAMPLE_ADDRESSES[index],
            scheduled_date=truncate_to_millis(now + timedelta(days=rng.random() * 7)),
            urgency=rng.choice(list(Urgency)),
            status=RequestStatus.PENDING,
            pickup_type=rng.choice(list(PickupType)),
            created_at=now,
            updated_at=now,
            payment_status=PaymentStatus.PENDING,
            estimated_weight=round(10 + rng.random() * 30, 1),
            preferred_time="10:00 AM - 12:00 PM",
            location=GeoLocation(latitude=lat, longitude=lng),
        ))
    return samples
