# wastewealth/lifecycle.py
"""
Status lifecycle for pickup requests.

The request state machine:
- PENDING -> ACCEPTED: A worker claims the request (accept_request only)
- ACCEPTED -> IN_PROGRESS: The worker is on the way
- IN_PROGRESS -> COMPLETED: Waste collected, payment released
- Any non-final state -> CANCELLED

COMPLETED and CANCELLED are final. ACCEPTED -> COMPLETED is allowed so a
worker can close a pickup without marking it in progress first. A pending
request can only be cancelled here; claiming it goes through
RequestStore.accept_request, which also records the worker.
"""

from __future__ import annotations

from typing import Dict, FrozenSet

from .models import RequestStatus


ALLOWED_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.CANCELLED}),
    RequestStatus.ACCEPTED: frozenset({
        RequestStatus.IN_PROGRESS,
        RequestStatus.COMPLETED,
        RequestStatus.CANCELLED,
    }),
    RequestStatus.IN_PROGRESS: frozenset({
        RequestStatus.COMPLETED,
        RequestStatus.CANCELLED,
    }),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


class InvalidTransitionError(ValueError):
    """Raised when a status change is not an edge of the lifecycle."""

    def __init__(self, request_id: str, current: RequestStatus, target: RequestStatus) -> None:
        self.request_id = request_id
        self.current = current
        self.target = target
        super().__init__(
            f"Request {request_id} cannot move from '{current.value}' to '{target.value}'"
        )


def is_allowed(current: RequestStatus, target: RequestStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def is_final(status: RequestStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def check_transition(request_id: str, current: RequestStatus, target: RequestStatus) -> None:
    """
    Validate a status change against the lifecycle table.

    Raises:
        InvalidTransitionError: If `target` is not reachable from `current`
    """
    if not is_allowed(current, target):
        raise InvalidTransitionError(request_id, current, target)
