# wastewealth/__init__.py

from .models import (
    PickupRequest,
    WasteItem,
    GeoLocation,
    WorkerStats,
    ActivityEntry,
    RequestStatus,
    Urgency,
    PickupType,
    PaymentStatus,
)
from .config import (
    REQUESTS_STORAGE_KEY,
    STATS_STORAGE_KEY,
    STRICT_STATUS_TRANSITIONS,
    API_TIMEOUT_SECONDS,
)
from .store import RequestStore, search_requests
from .lifecycle import InvalidTransitionError, check_transition
from .events import EventEmitter, RequestEvent
from .storage import JsonFileStorage, MemoryStorage, StorageError
from .worker import WorkerService, RequestOperationError
from .api import ApiClient, ApiError, AuthenticationError

__version__ = "1.0.0"
__author__ = "WasteWealth Team"

__all__ = [
    # Models
    "PickupRequest",
    "WasteItem",
    "GeoLocation",
    "WorkerStats",
    "ActivityEntry",
    "RequestStatus",
    "Urgency",
    "PickupType",
    "PaymentStatus",
    # Core
    "RequestStore",
    "WorkerService",
    "EventEmitter",
    "RequestEvent",
    "JsonFileStorage",
    "MemoryStorage",
    "ApiClient",
    # Functions
    "search_requests",
    "check_transition",
    # Errors
    "InvalidTransitionError",
    "RequestOperationError",
    "StorageError",
    "ApiError",
    "AuthenticationError",
    # Config
    "REQUESTS_STORAGE_KEY",
    "STATS_STORAGE_KEY",
    "STRICT_STATUS_TRANSITIONS",
    "API_TIMEOUT_SECONDS",
]
