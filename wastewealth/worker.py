# wastewealth/worker.py
"""
Local worker API backed by the request store.

Returns the same response envelopes as the remote worker endpoints, so
views can switch between the local store and the backend without changing
how they read responses. Failed operations raise instead of returning False.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from . import config
from .store import RequestStore

logger = logging.getLogger(__name__)


class RequestOperationError(RuntimeError):
    """Raised when the store refuses an accept or status update."""


class WorkerService:
    """
    Worker-facing facade over a RequestStore.

    Attributes:
        store: The request store to read from and write to
        worker_id: Worker recorded as the acceptor of requests
    """

    def __init__(self, store: RequestStore, worker_id: str = config.DEFAULT_WORKER_ID) -> None:
        self.store = store
        self.worker_id = worker_id

    def get_available_requests(self) -> Dict[str, Any]:
        requests = [req.to_dict() for req in self.store.get_available_requests()]
        return {"data": {"requests": requests}}

    def get_worker_stats(self) -> Dict[str, Any]:
        return {"data": {"stats": self.store.get_worker_stats().to_dict()}}

    def accept_request(self, request_id: str) -> Dict[str, Any]:
        """
        Raises:
            RequestOperationError: If the request is missing or no longer pending
        """
        if not self.store.accept_request(request_id, self.worker_id):
            logger.warning(f"Worker {self.worker_id} failed to accept request {request_id}")
            raise RequestOperationError("Failed to accept request")
        return {"success": True}

    def update_request_status(self, request_id: str, status: str, notes: Optional[str] = None) -> Dict[str, Any]:
        """
        Raises:
            RequestOperationError: If the request does not exist
            InvalidTransitionError: If the store runs strict transitions and the edge is illegal
        """
        if not self.store.update_request_status(request_id, status, notes):
            logger.warning(f"Failed to update request {request_id} to {status}")
            raise RequestOperationError("Failed to update request status")
        return {"success": True}
