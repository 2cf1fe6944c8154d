# wastewealth/models.py
"""
Core domain models for the WasteWealth pickup request store.

This module defines the data structures shared by the store, the CLI and
the dashboard:
- PickupRequest: One waste-collection job from creation to completion
- WasteItem: A single material line on a request
- WorkerStats: Aggregate figures derived from the request collection
- ActivityEntry: One line of the worker's recent activity feed

Records are persisted as JSON with camelCase keys and ISO-8601 timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from . import config
from .utils import format_timestamp, parse_timestamp


class RequestStatus(Enum):
    """Lifecycle states for a pickup request."""
    PENDING = "pending"          # Created, waiting for a worker
    ACCEPTED = "accepted"        # Claimed by a worker
    IN_PROGRESS = "in-progress"  # Worker is on the way or collecting
    COMPLETED = "completed"      # Collected and paid
    CANCELLED = "cancelled"


class Urgency(Enum):
    """Coarse priority used to order pending requests."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Sort rank, higher is more urgent."""
        return config.URGENCY_RANK[self.value]


class PickupType(Enum):
    INSTANT = "instant"
    SCHEDULED = "scheduled"
    DAILY = "daily"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


@dataclass
class WasteItem:
    """
    A single material line on a pickup request.

    Attributes:
        name: Material name, e.g. 'Plastic'
        quantity: Amount in the given unit
        unit: 'kg', 'liters' or 'items'
    """
    name: str
    quantity: float
    unit: str = "kg"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "quantity": self.quantity, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WasteItem:
        return cls(name=data["name"], quantity=data["quantity"], unit=data.get("unit", "kg"))


@dataclass
class GeoLocation:
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GeoLocation:
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass
class PickupRequest:
    """
    Represents one waste-collection job.

    Attributes:
        request_id: Unique identifier, never changes after creation
        user_id/user_name/user_rating: The requester
        waste_types: Material lines to collect
        total_amount: Payout for the whole request
        distance: Estimated distance to the pickup address in km
        address: Pickup address
        scheduled_date: When the requester wants the pickup
        urgency: Priority used when listing pending requests
        status: Current lifecycle state
        pickup_type: instant, scheduled or daily
        created_at/updated_at: Creation and last-mutation timestamps

    Optional state:
        accepted_by: Worker who accepted the request
        completed_at: Set when the request becomes completed
        estimated_weight: Expected total weight in kg (feeds waste processed)
        location: Coordinates of the pickup address, when known
    """
    request_id: str
    user_id: str
    user_name: str
    user_rating: float
    waste_types: List[WasteItem]
    total_amount: float
    distance: float
    address: str
    scheduled_date: datetime
    urgency: Urgency
    status: RequestStatus
    pickup_type: PickupType
    created_at: datetime
    updated_at: datetime
    payment_status: PaymentStatus = PaymentStatus.PENDING

    user_phone: Optional[str] = None
    image_url: Optional[str] = None
    estimated_weight: Optional[float] = None
    preferred_time: Optional[str] = None
    accepted_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    location: Optional[GeoLocation] = None

    @property
    def is_untouched(self) -> bool:
        """True if the request was never updated after creation."""
        return self.created_at == self.updated_at

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted camelCase layout. Unset optionals are omitted."""
        data: Dict[str, Any] = {
            "id": self.request_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "userRating": self.user_rating,
            "wasteTypes": [item.to_dict() for item in self.waste_types],
            "totalAmount": self.total_amount,
            "distance": self.distance,
            "address": self.address,
            "scheduledDate": format_timestamp(self.scheduled_date),
            "urgency": self.urgency.value,
            "status": self.status.value,
            "pickupType": self.pickup_type.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "paymentStatus": self.payment_status.value,
        }
        optional = {
            "userPhone": self.user_phone,
            "imageUrl": self.image_url,
            "estimatedWeight": self.estimated_weight,
            "preferredTime": self.preferred_time,
            "acceptedBy": self.accepted_by,
            "completedAt": format_timestamp(self.completed_at) if self.completed_at else None,
            "notes": self.notes,
            "location": self.location.to_dict() if self.location else None,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PickupRequest:
        """
        Build a request from its persisted layout.

        Raises:
            ValueError: If a required key is missing or an enum value is unknown
        """
        try:
            completed_at = data.get("completedAt")
            location = data.get("location")
            estimated_weight = data.get("estimatedWeight")
            return cls(
                request_id=data["id"],
                user_id=data["userId"],
                user_name=data["userName"],
                user_rating=float(data.get("userRating", 0)),
                waste_types=[WasteItem.from_dict(w) for w in data.get("wasteTypes", [])],
                total_amount=float(data["totalAmount"]),
                distance=float(data.get("distance", 0)),
                address=data.get("address", ""),
                scheduled_date=parse_timestamp(data["scheduledDate"]),
                urgency=Urgency(data["urgency"]),
                status=RequestStatus(data["status"]),
                pickup_type=PickupType(data["pickupType"]),
                created_at=parse_timestamp(data["createdAt"]),
                updated_at=parse_timestamp(data["updatedAt"]),
                payment_status=PaymentStatus(data.get("paymentStatus", "pending")),
                user_phone=data.get("userPhone"),
                image_url=data.get("imageUrl"),
                estimated_weight=float(estimated_weight) if estimated_weight is not None else None,
                preferred_time=data.get("preferredTime"),
                accepted_by=data.get("acceptedBy"),
                completed_at=parse_timestamp(completed_at) if completed_at else None,
                notes=data.get("notes"),
                location=GeoLocation.from_dict(location) if location else None,
            )
        except KeyError as e:
            raise ValueError(f"Pickup request is missing field {e}")

    def __repr__(self) -> str:
        return f"PickupRequest({self.request_id}, {self.status.value}, {self.urgency.value})"


@dataclass
class WorkerStats:
    """
    Worker statistics derived from the request collection.

    Every field except rating and efficiency is recomputed from the requests
    whenever the stats are read. Rating and efficiency keep their seeded
    values for the lifetime of the store.
    """
    today_requests: int = 0
    completed_today: int = 0
    earnings: float = 0.0
    monthly_earnings: float = 0.0
    rating: float = config.DEFAULT_WORKER_RATING
    total_collections: int = 0
    waste_processed: float = 0.0
    active_requests: int = 0
    completed_pickups: int = 0
    efficiency: float = config.DEFAULT_WORKER_EFFICIENCY

    _KEYS = {
        "today_requests": "todayRequests",
        "completed_today": "completedToday",
        "earnings": "earnings",
        "monthly_earnings": "monthlyEarnings",
        "rating": "rating",
        "total_collections": "totalCollections",
        "waste_processed": "wasteProcessed",
        "active_requests": "activeRequests",
        "completed_pickups": "completedPickups",
        "efficiency": "efficiency",
    }

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in self._KEYS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional[WorkerStats] = None) -> WorkerStats:
        """
        Merge a persisted snapshot over `base` (or the defaults). Unknown keys are ignored.

        Raises:
            ValueError: If a known key holds a value that is not a number
        """
        defaults = base or cls()
        values = {}
        for attr, key in cls._KEYS.items():
            current = getattr(defaults, attr)
            if key not in data:
                values[attr] = current
                continue
            try:
                values[attr] = type(current)(data[key])
            except (TypeError, ValueError):
                raise ValueError(f"Worker stats field '{key}' is not a number: {data[key]!r}")
        return cls(**values)


@dataclass
class ActivityEntry:
    """One line of the recent activity feed."""
    activity_id: str
    time: str
    action: str
    icon: str
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.activity_id,
            "time": self.time,
            "action": self.action,
            "icon": self.icon,
            "color": self.color,
        }
