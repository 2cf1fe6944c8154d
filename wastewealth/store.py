# wastewealth/store.py
"""
Pickup request store for the worker app.

The store is the single source of truth for pickup requests on the device:
- Keeps the request collection in memory, newest first
- Persists the full collection to key-value storage after every mutation
- Recomputes the worker statistics from the collection on every mutation
- Publishes change events so views can re-render

Persistence failures on the write path are logged and swallowed: the
in-memory mutation stands and the caller is not told. Read failures at
startup fall back to sample data.

The store is not a singleton. The application root constructs one and hands
it to whatever needs it.
"""

from __future__ import annotations

import copy
import json
import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from . import config, lifecycle
from .events import EventEmitter, Listener, RequestEvent, Unsubscribe
from .models import (
    ActivityEntry,
    GeoLocation,
    PaymentStatus,
    PickupRequest,
    PickupType,
    RequestStatus,
    Urgency,
    WasteItem,
    WorkerStats,
)
from .samples import generate_sample_requests
from .storage import KeyValueStorage
from .utils import generate_request_id, time_ago, truncate_to_millis, utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _coerce_enum(enum_cls, value):
    """Accept an enum member or its string value. Raises ValueError for unknown values."""
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)


def _coerce_waste_item(item: Union[WasteItem, Dict[str, Any]]) -> WasteItem:
    if isinstance(item, WasteItem):
        return copy.copy(item)
    return WasteItem.from_dict(item)


def _coerce_location(value) -> Optional[GeoLocation]:
    if value is None or isinstance(value, GeoLocation):
        return value
    if isinstance(value, dict):
        return GeoLocation.from_dict(value)
    lat, lng = value
    return GeoLocation(latitude=float(lat), longitude=float(lng))


def _format_amount(amount: float) -> str:
    amount = float(amount)
    return str(int(amount)) if amount.is_integer() else str(amount)


def search_requests(
    requests: Iterable[PickupRequest],
    urgency: str = "all",
    query: str = "",
) -> List[PickupRequest]:
    """
    Filter requests by urgency and a free-text query.

    The query matches case-insensitively against the requester name, the
    address and the waste item names. Input order is preserved.

    Args:
        requests: Requests to filter
        urgency: 'all' or one of 'low', 'medium', 'high'
        query: Text to look for; empty matches everything
    """
    wanted = None if urgency in (None, "all") else _coerce_enum(Urgency, urgency)
    needle = (query or "").strip().lower()

    result = []
    for req in requests:
        if wanted is not None and req.urgency != wanted:
            continue
        if needle:
            haystack = [req.user_name, req.address] + [item.name for item in req.waste_types]
            if not any(needle in text.lower() for text in haystack):
                continue
        result.append(req)
    return result


class RequestStore:
    """
    In-process store of pickup requests with derived worker statistics.

    Every public read returns copies, so callers cannot mutate stored records
    without going through the store (and its event emission).

    Attributes:
        storage: Key-value backend holding the persisted collection and stats
        strict_transitions: Validate status updates against the lifecycle table
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        strict_transitions: Optional[bool] = None,
        seed_samples: bool = True,
    ) -> None:
        """
        Load persisted state, seeding sample requests when none exists.

        Args:
            storage: Key-value backend
            clock: Returns the current time (defaults to UTC wall clock)
            rng: Random source for ids and sample data
            strict_transitions: Overrides config.STRICT_STATUS_TRANSITIONS
            seed_samples: Seed sample requests when storage holds no collection
        """
        self.storage = storage
        self.strict_transitions: bool = (
            config.STRICT_STATUS_TRANSITIONS if strict_transitions is None else strict_transitions
        )
        self._clock: Clock = clock or utc_now
        self._rng = rng or random.Random()
        self._seed_samples = seed_samples

        self._requests: List[PickupRequest] = []
        self._stats = WorkerStats()
        self._events = EventEmitter()

        self._load_requests()
        self._load_stats()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _now(self) -> datetime:
        return truncate_to_millis(self._clock())

    def _seed(self) -> List[PickupRequest]:
        if not self._seed_samples:
            return []
        return generate_sample_requests(now=self._now(), rng=self._rng)

    @staticmethod
    def _parse_requests(raw: str) -> List[PickupRequest]:
        data = json.loads(raw)
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise ValueError("Persisted requests must be a JSON array of objects")
        return [PickupRequest.from_dict(item) for item in data]

    def _load_requests(self) -> None:
        try:
            raw = self.storage.get_item(config.REQUESTS_STORAGE_KEY)
            if raw is None:
                self._requests = self._seed()
                logger.info(f"No stored requests found, seeded {len(self._requests)} samples")
                self._save_requests()
            else:
                self._requests = self._parse_requests(raw)
                logger.debug(f"Loaded {len(self._requests)} requests from storage")
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to load stored requests, using sample data: {e}")
            self._requests = self._seed()

    def _save_requests(self) -> None:
        try:
            payload = json.dumps([req.to_dict() for req in self._requests])
            self.storage.set_item(config.REQUESTS_STORAGE_KEY, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to persist requests: {e}")

    def _load_stats(self) -> None:
        try:
            raw = self.storage.get_item(config.STATS_STORAGE_KEY)
            if raw:
                snapshot = json.loads(raw)
                if not isinstance(snapshot, dict):
                    raise ValueError("Persisted stats must be a JSON object")
                self._stats = WorkerStats.from_dict(snapshot, base=self._stats)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to load stored worker stats: {e}")
        self._recompute_stats()

    def _save_stats(self) -> None:
        try:
            self.storage.set_item(config.STATS_STORAGE_KEY, json.dumps(self._stats.to_dict()))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to persist worker stats: {e}")

    # =========================================================================
    # DERIVED STATS
    # =========================================================================

    def _recompute_stats(self) -> None:
        """
        Rebuild the derived worker statistics from the request collection.

        'Today' and 'this month' use the local calendar at call time. Rating
        and efficiency are carried over untouched.
        """
        now = self._now().astimezone()
        today = now.date()

        def local_date(value: datetime):
            return value.astimezone().date()

        def finished_on(request: PickupRequest):
            return local_date(request.completed_at or request.created_at)

        completed = [r for r in self._requests if r.status == RequestStatus.COMPLETED]
        today_requests = [r for r in self._requests if local_date(r.created_at) == today]
        completed_today = [r for r in completed if finished_on(r) == today]
        this_month = [
            r for r in completed
            if finished_on(r).year == now.year and finished_on(r).month == now.month
        ]
        active = [r for r in self._requests if r.status.value in config.ACTIVE_STATUSES]

        self._stats.today_requests = len(today_requests)
        self._stats.completed_today = len(completed_today)
        self._stats.earnings = sum(r.total_amount for r in completed_today)
        self._stats.monthly_earnings = sum(r.total_amount for r in this_month)
        self._stats.active_requests = len(active)
        self._stats.completed_pickups = len(completed)
        self._stats.total_collections = len(completed)
        self._stats.waste_processed = sum(r.estimated_weight or 0 for r in completed)

        self._save_stats()

    def _after_mutation(self) -> None:
        self._save_requests()
        self._recompute_stats()

    def _publish(self, event: Optional[RequestEvent] = None, request: Optional[PickupRequest] = None) -> None:
        """Emit the per-record event (if any), then the list and stats updates."""
        if event is not None and request is not None:
            self._events.emit(event, copy.deepcopy(request))
        self._events.emit(RequestEvent.REQUESTS_UPDATED, self.get_available_requests())
        self._events.emit(RequestEvent.STATS_UPDATED, copy.deepcopy(self._stats))

    def _find(self, request_id: str) -> Optional[PickupRequest]:
        return next((r for r in self._requests if r.request_id == request_id), None)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_request(
        self,
        *,
        user_id: str,
        user_name: str,
        waste_types: List[Union[WasteItem, Dict[str, Any]]],
        total_amount: float,
        address: str,
        user_rating: float = 0.0,
        distance: float = 0.0,
        scheduled_date: Optional[datetime] = None,
        urgency: Union[Urgency, str] = Urgency.MEDIUM,
        pickup_type: Union[PickupType, str] = PickupType.INSTANT,
        user_phone: Optional[str] = None,
        image_url: Optional[str] = None,
        estimated_weight: Optional[float] = None,
        preferred_time: Optional[str] = None,
        notes: Optional[str] = None,
        location=None,
    ) -> PickupRequest:
        """
        Create a pending request and put it at the front of the collection.

        Emits request_added, requests_updated and stats_updated, in that order.

        Returns:
            A copy of the stored request

        Raises:
            ValueError: If urgency or pickup_type is not a known value
        """
        now = self._now()
        request = PickupRequest(
            request_id=generate_request_id(now, self._rng),
            user_id=user_id,
            user_name=user_name,
            user_rating=float(user_rating),
            waste_types=[_coerce_waste_item(item) for item in waste_types],
            total_amount=float(total_amount),
            distance=float(distance),
            address=address,
            scheduled_date=truncate_to_millis(scheduled_date) if scheduled_date else now,
            urgency=_coerce_enum(Urgency, urgency),
            status=RequestStatus.PENDING,
            pickup_type=_coerce_enum(PickupType, pickup_type),
            created_at=now,
            updated_at=now,
            payment_status=PaymentStatus.PENDING,
            user_phone=user_phone,
            image_url=image_url,
            estimated_weight=estimated_weight,
            preferred_time=preferred_time,
            notes=notes,
            location=_coerce_location(location),
        )

        self._requests.insert(0, request)
        self._after_mutation()
        logger.info(f"Added request {request.request_id} from {user_name} ({request.urgency.value})")

        self._publish(RequestEvent.REQUEST_ADDED, request)
        return copy.deepcopy(request)

    def accept_request(self, request_id: str, worker_id: str = config.DEFAULT_WORKER_ID) -> bool:
        """
        Claim a pending request for a worker.

        Returns:
            True if the request existed and was pending; False otherwise, in
            which case nothing changes and no event is emitted
        """
        request = self._find(request_id)
        if request is None or request.status != RequestStatus.PENDING:
            logger.debug(f"Cannot accept request {request_id}: not found or not pending")
            return False

        request.status = RequestStatus.ACCEPTED
        request.accepted_by = worker_id
        request.updated_at = self._now()

        self._after_mutation()
        logger.info(f"Request {request_id} accepted by {worker_id}")

        self._publish(RequestEvent.REQUEST_ACCEPTED, request)
        return True

    def update_request_status(
        self,
        request_id: str,
        status: Union[RequestStatus, str],
        notes: Optional[str] = None,
    ) -> bool:
        """
        Move a request to a new status.

        Completing a request stamps completed_at and marks the payment paid.
        With strict transitions the change must be an edge of the lifecycle
        table; otherwise any status is written as-is.

        Returns:
            False if the request does not exist, True once the change is applied

        Raises:
            ValueError: If `status` is not a known status
            InvalidTransitionError: In strict mode, if the edge is not allowed
        """
        target = _coerce_enum(RequestStatus, status)
        request = self._find(request_id)
        if request is None:
            logger.debug(f"Cannot update request {request_id}: not found")
            return False

        if self.strict_transitions:
            lifecycle.check_transition(request_id, request.status, target)

        now = self._now()
        previous = request.status
        request.status = target
        request.updated_at = now
        if notes:
            request.notes = notes
        if target == RequestStatus.COMPLETED:
            request.completed_at = now
            request.payment_status = PaymentStatus.PAID

        self._after_mutation()
        logger.info(f"Request {request_id} moved from {previous.value} to {target.value}")

        self._publish(RequestEvent.REQUEST_UPDATED, request)
        return True

    def remove_request(self, request_id: str) -> bool:
        """Delete a request. Returns False if it does not exist."""
        remaining = [r for r in self._requests if r.request_id != request_id]
        if len(remaining) == len(self._requests):
            return False

        self._requests = remaining
        self._after_mutation()
        logger.info(f"Removed request {request_id}")

        self._publish()
        return True

    def clear_all_requests(self) -> None:
        """Delete every request."""
        count = len(self._requests)
        self._requests = []
        self._after_mutation()
        logger.info(f"Cleared {count} requests")

        self._publish()

    # =========================================================================
    # READS
    # =========================================================================

    def get_request(self, request_id: str) -> Optional[PickupRequest]:
        request = self._find(request_id)
        return copy.deepcopy(request) if request else None

    def get_available_requests(self) -> List[PickupRequest]:
        """
        Pending requests, most urgent first, newest first within an urgency.
        """
        pending = [r for r in self._requests if r.status == RequestStatus.PENDING]
        ordered = sorted(pending, key=lambda r: (r.urgency.rank, r.created_at), reverse=True)
        return copy.deepcopy(ordered)

    def get_requests_by_status(self, status: Union[RequestStatus, str, None] = None) -> List[PickupRequest]:
        """
        Requests with the given status (all requests for None or 'all'),
        most recently updated first.
        """
        if status is None or status == "all":
            selected = list(self._requests)
        else:
            target = _coerce_enum(RequestStatus, status)
            selected = [r for r in self._requests if r.status == target]
        ordered = sorted(selected, key=lambda r: r.updated_at, reverse=True)
        return copy.deepcopy(ordered)

    def get_worker_stats(self) -> WorkerStats:
        """Recompute the statistics and return a copy."""
        self._recompute_stats()
        return copy.deepcopy(self._stats)

    def get_recent_activity(self) -> List[ActivityEntry]:
        """
        Build the recent activity feed.

        Looks at the most recently updated requests and describes completed,
        accepted and never-touched pending ones. Other statuses produce no
        entry.
        """
        now = self._now()
        recent = sorted(self._requests, key=lambda r: r.updated_at, reverse=True)[:config.ACTIVITY_SCAN_LIMIT]

        activities: List[ActivityEntry] = []
        for req in recent:
            elapsed_ms = (now - req.updated_at).total_seconds() * 1000
            when = time_ago(elapsed_ms)

            if req.status == RequestStatus.COMPLETED:
                activities.append(ActivityEntry(
                    activity_id=f"complete_{req.request_id}",
                    time=when,
                    action=(
                        f"Completed pickup from {req.user_name} - "
                        f"Earned {config.CURRENCY_SYMBOL}{_format_amount(req.total_amount)}"
                    ),
                    icon="check-circle",
                    color="#4CAF50",
                ))
            elif req.status == RequestStatus.ACCEPTED:
                activities.append(ActivityEntry(
                    activity_id=f"accept_{req.request_id}",
                    time=when,
                    action=f"Accepted pickup request from {req.user_name}",
                    icon="handshake",
                    color="#2196F3",
                ))
            elif req.status == RequestStatus.PENDING and req.is_untouched:
                activities.append(ActivityEntry(
                    activity_id=f"new_{req.request_id}",
                    time=when,
                    action=f"New pickup request from {req.user_name}",
                    icon="bell",
                    color="#FF9800",
                ))

        return activities[:config.ACTIVITY_FEED_LIMIT]

    def __len__(self) -> int:
        return len(self._requests)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def on_requests_updated(self, listener: Listener) -> Unsubscribe:
        """Called with the available (pending, sorted) requests after every mutation."""
        return self._events.on(RequestEvent.REQUESTS_UPDATED, listener)

    def on_stats_updated(self, listener: Listener) -> Unsubscribe:
        return self._events.on(RequestEvent.STATS_UPDATED, listener)

    def on_request_added(self, listener: Listener) -> Unsubscribe:
        return self._events.on(RequestEvent.REQUEST_ADDED, listener)

    def on_request_accepted(self, listener: Listener) -> Unsubscribe:
        return self._events.on(RequestEvent.REQUEST_ACCEPTED, listener)

    def on_request_updated(self, listener: Listener) -> Unsubscribe:
        return self._events.on(RequestEvent.REQUEST_UPDATED, listener)
