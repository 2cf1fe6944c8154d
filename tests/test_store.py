"""Unit tests for the pickup request store."""
import json
import logging
import random
from datetime import datetime, timedelta, timezone

import pytest

from wastewealth import config
from wastewealth.events import RequestEvent
from wastewealth.lifecycle import InvalidTransitionError
from wastewealth.models import PaymentStatus, PickupRequest, PickupType, RequestStatus, Urgency, WasteItem
from wastewealth.storage import MemoryStorage, StorageError
from wastewealth.store import RequestStore, search_requests


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FailingWriteStorage(MemoryStorage):
    def set_item(self, key, value):
        raise StorageError("disk full")


START = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)


def completed_record(**overrides):
    record = {
        "id": "req_stored",
        "userId": "user_1",
        "userName": "Asha",
        "wasteTypes": [{"name": "Paper", "quantity": 5, "unit": "kg"}],
        "totalAmount": 90,
        "address": "12 MG Road",
        "scheduledDate": "2026-10-15T09:00:00.000Z",
        "urgency": "low",
        "status": "completed",
        "pickupType": "instant",
        "createdAt": "2026-10-15T09:00:00.000Z",
        "updatedAt": "2026-10-15T10:00:00.000Z",
        "completedAt": "2026-10-15T10:00:00.000Z",
        "paymentStatus": "paid",
    }
    record.update(overrides)
    return record


def new_request(store, name="Asha", urgency="medium", amount=100.0, **extra):
    return store.add_request(
        user_id=f"user_{name.lower()}",
        user_name=name,
        waste_types=[{"name": "Plastic", "quantity": 10, "unit": "kg"}],
        total_amount=amount,
        address="12 MG Road",
        urgency=urgency,
        **extra,
    )


class TestStoreInitialization:
    def setup_method(self):
        self.clock = FakeClock(START)

    def test_empty_storage_is_seeded_and_persisted(self):
        storage = MemoryStorage()
        store = RequestStore(storage, clock=self.clock, rng=random.Random(7))

        assert len(store) == config.SAMPLE_REQUEST_COUNT
        persisted = json.loads(storage.get_item(config.REQUESTS_STORAGE_KEY))
        assert len(persisted) == config.SAMPLE_REQUEST_COUNT
        assert all(item["status"] == "pending" for item in persisted)

    def test_seeding_can_be_disabled(self):
        store = RequestStore(MemoryStorage(), clock=self.clock, seed_samples=False)
        assert len(store) == 0
        assert store.get_available_requests() == []

    def test_corrupt_storage_falls_back_to_samples_without_overwriting(self, caplog):
        storage = MemoryStorage({config.REQUESTS_STORAGE_KEY: "not json"})
        with caplog.at_level(logging.WARNING):
            store = RequestStore(storage, clock=self.clock)

        assert len(store) == config.SAMPLE_REQUEST_COUNT
        assert storage.get_item(config.REQUESTS_STORAGE_KEY) == "not json"
        assert "Failed to load stored requests" in caplog.text

    def test_stored_stats_snapshot_is_merged_then_recomputed(self):
        snapshot = {"rating": 4.2, "efficiency": 88, "completedPickups": 99}
        storage = MemoryStorage({
            config.REQUESTS_STORAGE_KEY: "[]",
            config.STATS_STORAGE_KEY: json.dumps(snapshot),
        })
        store = RequestStore(storage, clock=self.clock)
        stats = store.get_worker_stats()

        assert stats.rating == 4.2
        assert stats.efficiency == 88
        assert stats.completed_pickups == 0

    def test_stats_snapshot_with_non_numeric_values_keeps_defaults(self, caplog):
        snapshot = {"rating": None, "efficiency": "high"}
        storage = MemoryStorage({
            config.REQUESTS_STORAGE_KEY: "[]",
            config.STATS_STORAGE_KEY: json.dumps(snapshot),
        })
        with caplog.at_level(logging.WARNING):
            store = RequestStore(storage, clock=self.clock)
        stats = store.get_worker_stats()

        assert stats.rating == config.DEFAULT_WORKER_RATING
        assert stats.efficiency == config.DEFAULT_WORKER_EFFICIENCY
        assert f"{stats.rating:.1f}" == "4.8"
        assert "Failed to load stored worker stats" in caplog.text
        assert json.loads(storage.get_item(config.STATS_STORAGE_KEY))["rating"] == config.DEFAULT_WORKER_RATING

    def test_numeric_string_weight_is_coerced(self):
        record = completed_record(estimatedWeight="12")
        storage = MemoryStorage({config.REQUESTS_STORAGE_KEY: json.dumps([record])})

        store = RequestStore(storage, clock=self.clock)

        assert store.get_request("req_stored").estimated_weight == 12.0
        assert store.get_worker_stats().waste_processed == 12.0

    def test_non_numeric_weight_falls_back_to_samples(self, caplog):
        record = completed_record(estimatedWeight="heavy")
        storage = MemoryStorage({config.REQUESTS_STORAGE_KEY: json.dumps([record])})

        with caplog.at_level(logging.WARNING):
            store = RequestStore(storage, clock=self.clock)

        assert len(store) == config.SAMPLE_REQUEST_COUNT
        assert store.get_request("req_stored") is None
        assert "Failed to load stored requests" in caplog.text

    def test_round_trip_through_storage(self):
        storage = MemoryStorage()
        store = RequestStore(storage, clock=self.clock, rng=random.Random(1))
        first = new_request(store, "Asha", estimated_weight=12.5, location=(30.73, 76.78))
        self.clock.advance(minutes=5)
        new_request(store, "Ravi", urgency="high")
        self.clock.advance(minutes=5)
        store.accept_request(first.request_id, "worker_9")

        reloaded = RequestStore(storage, clock=self.clock)

        assert reloaded.get_requests_by_status("all") == store.get_requests_by_status("all")


class TestAddAndList:
    def setup_method(self):
        self.clock = FakeClock(START)
        self.store = RequestStore(MemoryStorage(), clock=self.clock, seed_samples=False)

    def test_added_request_is_pending_with_equal_timestamps(self):
        req = new_request(self.store)

        assert req.status == RequestStatus.PENDING
        assert req.payment_status == PaymentStatus.PENDING
        assert req.created_at == req.updated_at
        assert req.request_id.startswith("req_")
        assert req.waste_types == [WasteItem("Plastic", 10, "kg")]

    def test_new_requests_go_to_the_front(self):
        new_request(self.store, "Asha")
        self.clock.advance(seconds=1)
        second = new_request(self.store, "Ravi")

        all_requests = self.store.get_requests_by_status()
        assert all_requests[0].request_id == second.request_id

    def test_unknown_urgency_is_rejected(self):
        with pytest.raises(ValueError):
            new_request(self.store, urgency="critical")

    def test_available_ordering_by_urgency_then_recency(self):
        ids = {}
        for label, urgency in [("low", "low"), ("high_early", "high"), ("medium", "medium"), ("high_late", "high")]:
            ids[label] = new_request(self.store, label, urgency=urgency).request_id
            self.clock.advance(minutes=1)

        order = [r.request_id for r in self.store.get_available_requests()]

        assert order == [ids["high_late"], ids["high_early"], ids["medium"], ids["low"]]

    def test_available_only_contains_pending(self):
        a = new_request(self.store, "Asha")
        b = new_request(self.store, "Ravi")
        self.store.accept_request(a.request_id)
        self.store.update_request_status(b.request_id, "cancelled")
        new_request(self.store, "Meena")

        available = self.store.get_available_requests()
        assert [r.user_name for r in available] == ["Meena"]
        assert all(r.status == RequestStatus.PENDING for r in available)

    def test_requests_by_status_sorted_by_update_time(self):
        a = new_request(self.store, "Asha")
        self.clock.advance(minutes=1)
        b = new_request(self.store, "Ravi")
        self.clock.advance(minutes=1)
        self.store.accept_request(a.request_id)

        assert [r.request_id for r in self.store.get_requests_by_status("all")] == [a.request_id, b.request_id]
        assert [r.request_id for r in self.store.get_requests_by_status("accepted")] == [a.request_id]
        assert self.store.get_requests_by_status(RequestStatus.COMPLETED) == []

    def test_reads_return_copies(self):
        req = new_request(self.store)
        listed = self.store.get_available_requests()[0]
        listed.status = RequestStatus.COMPLETED
        req.user_name = "Tampered"

        stored = self.store.get_request(req.request_id)
        assert stored.status == RequestStatus.PENDING
        assert stored.user_name == "Asha"


class TestTransitions:
    def setup_method(self):
        self.clock = FakeClock(START)
        self.store = RequestStore(MemoryStorage(), clock=self.clock, seed_samples=False)
        self.request = new_request(self.store)

    def test_accept_pending_request(self):
        self.clock.advance(minutes=3)
        assert self.store.accept_request(self.request.request_id, "worker_9") is True

        stored = self.store.get_request(self.request.request_id)
        assert stored.status == RequestStatus.ACCEPTED
        assert stored.accepted_by == "worker_9"
        assert stored.updated_at == START + timedelta(minutes=3)

    def test_accept_non_pending_is_a_no_op(self):
        self.store.accept_request(self.request.request_id, "worker_1")
        before = self.store.get_request(self.request.request_id)
        events = []
        self.store.on_request_accepted(events.append)

        assert self.store.accept_request(self.request.request_id, "worker_2") is False
        assert self.store.get_request(self.request.request_id) == before
        assert events == []

    def test_accept_unknown_id(self):
        assert self.store.accept_request("missing") is False

    def test_update_unknown_id(self):
        assert self.store.update_request_status("missing", "completed") is False

    def test_update_with_unknown_status_raises(self):
        with pytest.raises(ValueError):
            self.store.update_request_status(self.request.request_id, "lost")

    def test_completing_marks_paid_and_stamps_completion(self):
        self.store.accept_request(self.request.request_id)
        assert self.store.update_request_status(self.request.request_id, "completed", notes="All sorted")

        stored = self.store.get_request(self.request.request_id)
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.completed_at is not None
        assert stored.notes == "All sorted"

    def test_strict_mode_rejects_illegal_edges(self):
        self.store.accept_request(self.request.request_id)
        self.store.update_request_status(self.request.request_id, "completed")

        with pytest.raises(InvalidTransitionError):
            self.store.update_request_status(self.request.request_id, "completed")
        with pytest.raises(InvalidTransitionError):
            self.store.update_request_status(self.request.request_id, "pending")
        assert self.store.get_request(self.request.request_id).status == RequestStatus.COMPLETED

    def test_pending_request_is_only_claimed_through_accept(self):
        for target in ("accepted", "in-progress"):
            with pytest.raises(InvalidTransitionError):
                self.store.update_request_status(self.request.request_id, target)

        stored = self.store.get_request(self.request.request_id)
        assert stored.status == RequestStatus.PENDING
        assert stored.accepted_by is None

    def test_legacy_mode_applies_any_status(self):
        store = RequestStore(MemoryStorage(), clock=self.clock, seed_samples=False, strict_transitions=False)
        req = new_request(store)

        assert store.update_request_status(req.request_id, "completed") is True
        self.clock.advance(minutes=1)
        assert store.update_request_status(req.request_id, "completed") is True
        assert store.update_request_status(req.request_id, "pending") is True
        assert store.get_request(req.request_id).status == RequestStatus.PENDING

    def test_remove_and_clear(self):
        other = new_request(self.store, "Ravi")

        assert self.store.remove_request(other.request_id) is True
        assert self.store.remove_request(other.request_id) is False
        assert len(self.store) == 1

        self.store.clear_all_requests()
        assert len(self.store) == 0
        assert json.loads(self.store.storage.get_item(config.REQUESTS_STORAGE_KEY)) == []


class TestWorkerStats:
    def setup_method(self):
        self.clock = FakeClock(START)
        self.storage = MemoryStorage()
        self.store = RequestStore(self.storage, clock=self.clock, seed_samples=False)

    def test_counts_and_earnings(self):
        done = new_request(self.store, "Asha", amount=120, estimated_weight=15)
        active = new_request(self.store, "Ravi", amount=50)
        new_request(self.store, "Meena", amount=70)
        self.store.accept_request(done.request_id)
        self.store.update_request_status(done.request_id, "completed")
        self.store.accept_request(active.request_id)

        stats = self.store.get_worker_stats()

        assert stats.today_requests == 3
        assert stats.completed_today == 1
        assert stats.earnings == 120
        assert stats.monthly_earnings == 120
        assert stats.active_requests == 2
        assert stats.completed_pickups == 1
        assert stats.total_collections == 1
        assert stats.waste_processed == 15
        assert stats.rating == config.DEFAULT_WORKER_RATING
        assert stats.efficiency == config.DEFAULT_WORKER_EFFICIENCY

    def test_monthly_earnings_exclude_previous_months(self):
        last_month = datetime(2026, 9, 10, 12, 0, tzinfo=timezone.utc)
        old = PickupRequest(
            request_id="req_old",
            user_id="user_old",
            user_name="Old",
            user_rating=4.0,
            waste_types=[WasteItem("Paper", 5)],
            total_amount=500,
            distance=1.0,
            address="Somewhere",
            scheduled_date=last_month,
            urgency=Urgency.LOW,
            status=RequestStatus.COMPLETED,
            pickup_type=PickupType.SCHEDULED,
            created_at=last_month,
            updated_at=last_month,
            payment_status=PaymentStatus.PAID,
            completed_at=last_month,
        )
        self.storage.set_item(config.REQUESTS_STORAGE_KEY, json.dumps([old.to_dict()]))
        store = RequestStore(self.storage, clock=self.clock)
        fresh = new_request(store, "Asha", amount=80)
        store.accept_request(fresh.request_id)
        store.update_request_status(fresh.request_id, "completed")

        stats = store.get_worker_stats()

        assert stats.monthly_earnings == 80
        assert stats.completed_pickups == 2

    def test_stats_snapshot_is_persisted(self):
        new_request(self.store)
        snapshot = json.loads(self.storage.get_item(config.STATS_STORAGE_KEY))
        assert snapshot["activeRequests"] == 1
        assert snapshot["rating"] == config.DEFAULT_WORKER_RATING

    def test_stats_copy_is_detached(self):
        stats = self.store.get_worker_stats()
        stats.rating = 1.0
        assert self.store.get_worker_stats().rating == config.DEFAULT_WORKER_RATING


class TestRecentActivity:
    def setup_method(self):
        self.clock = FakeClock(START)
        self.store = RequestStore(
            MemoryStorage(), clock=self.clock, seed_samples=False, strict_transitions=False
        )

    def test_feed_entries_and_relative_times(self):
        done = new_request(self.store, "Asha", amount=80)
        accepted = new_request(self.store, "Ravi")
        fresh = new_request(self.store, "Meena")
        self.store.accept_request(done.request_id)
        self.store.update_request_status(done.request_id, "completed")
        self.store.accept_request(accepted.request_id)
        self.clock.advance(hours=2)

        feed = {entry.activity_id: entry for entry in self.store.get_recent_activity()}

        assert feed[f"complete_{done.request_id}"].action == "Completed pickup from Asha - Earned ₹80"
        assert feed[f"accept_{accepted.request_id}"].action == "Accepted pickup request from Ravi"
        assert feed[f"new_{fresh.request_id}"].action == "New pickup request from Meena"
        assert all(entry.time == "2 hours ago" for entry in feed.values())

    def test_fractional_amount_keeps_significant_digits(self):
        done = new_request(self.store, "Asha", amount=80.5)
        self.store.update_request_status(done.request_id, "completed")

        feed = self.store.get_recent_activity()

        assert feed[0].action == "Completed pickup from Asha - Earned ₹80.5"

    def test_touched_pending_and_cancelled_requests_are_skipped(self):
        touched = new_request(self.store, "Asha")
        cancelled = new_request(self.store, "Ravi")
        self.clock.advance(minutes=1)
        self.store.update_request_status(touched.request_id, "pending")
        self.store.update_request_status(cancelled.request_id, "cancelled")

        assert self.store.get_recent_activity() == []

    def test_feed_is_capped(self):
        for i in range(8):
            new_request(self.store, f"User{i}")
            self.clock.advance(seconds=30)

        feed = self.store.get_recent_activity()

        assert len(feed) == config.ACTIVITY_FEED_LIMIT
        assert feed[0].action == "New pickup request from User7"
        assert feed[0].time == "Just now"


class TestEvents:
    def setup_method(self):
        self.clock = FakeClock(START)
        self.store = RequestStore(MemoryStorage(), clock=self.clock, seed_samples=False)
        self.log = []
        self.store.on_request_added(lambda req: self.log.append((RequestEvent.REQUEST_ADDED, req)))
        self.store.on_request_accepted(lambda req: self.log.append((RequestEvent.REQUEST_ACCEPTED, req)))
        self.store.on_request_updated(lambda req: self.log.append((RequestEvent.REQUEST_UPDATED, req)))
        self.store.on_requests_updated(lambda reqs: self.log.append((RequestEvent.REQUESTS_UPDATED, reqs)))
        self.store.on_stats_updated(lambda stats: self.log.append((RequestEvent.STATS_UPDATED, stats)))

    def names(self):
        return [event for event, _ in self.log]

    def test_add_emits_in_order(self):
        req = new_request(self.store)

        assert self.names() == [
            RequestEvent.REQUEST_ADDED,
            RequestEvent.REQUESTS_UPDATED,
            RequestEvent.STATS_UPDATED,
        ]
        assert self.log[0][1].request_id == req.request_id
        assert [r.request_id for r in self.log[1][1]] == [req.request_id]
        assert self.log[2][1].active_requests == 1

    def test_accept_and_update_emit_in_order(self):
        req = new_request(self.store)
        self.log.clear()

        self.store.accept_request(req.request_id)
        self.store.update_request_status(req.request_id, "in-progress")

        assert self.names() == [
            RequestEvent.REQUEST_ACCEPTED,
            RequestEvent.REQUESTS_UPDATED,
            RequestEvent.STATS_UPDATED,
            RequestEvent.REQUEST_UPDATED,
            RequestEvent.REQUESTS_UPDATED,
            RequestEvent.STATS_UPDATED,
        ]
        assert self.log[1][1] == []

    def test_clear_emits_empty_list(self):
        new_request(self.store)
        self.log.clear()

        self.store.clear_all_requests()

        assert self.log[0] == (RequestEvent.REQUESTS_UPDATED, [])
        assert self.log[1][0] == RequestEvent.STATS_UPDATED

    def test_unsubscribe_stops_delivery(self):
        received = []
        unsubscribe = self.store.on_request_added(received.append)
        new_request(self.store)
        unsubscribe()
        new_request(self.store)

        assert len(received) == 1

    def test_failing_listener_does_not_block_others(self):
        received = []

        def broken(_):
            raise RuntimeError("boom")

        store = RequestStore(MemoryStorage(), clock=self.clock, seed_samples=False)
        store.on_request_added(broken)
        store.on_request_added(received.append)
        new_request(store)

        assert len(received) == 1


class TestPersistenceFailures:
    def test_write_failure_is_logged_and_swallowed(self, caplog):
        clock = FakeClock(START)
        store = RequestStore(FailingWriteStorage(), clock=clock, seed_samples=False)

        with caplog.at_level(logging.ERROR):
            req = new_request(store)

        assert store.get_request(req.request_id) is not None
        assert "Failed to persist requests" in caplog.text


class TestSearch:
    def setup_method(self):
        self.clock = FakeClock(START)
        self.store = RequestStore(MemoryStorage(), clock=self.clock, seed_samples=False)
        new_request(self.store, "Asha", urgency="high")
        self.store.add_request(
            user_id="u2",
            user_name="Ravi",
            waste_types=[WasteItem("E-Waste", 3)],
            total_amount=300,
            address="Sector 17, Chandigarh",
            urgency="low",
        )

    def test_filter_by_urgency(self):
        result = search_requests(self.store.get_available_requests(), urgency="high")
        assert [r.user_name for r in result] == ["Asha"]

    def test_query_matches_address_and_material(self):
        available = self.store.get_available_requests()
        assert [r.user_name for r in search_requests(available, query="sector 17")] == ["Ravi"]
        assert [r.user_name for r in search_requests(available, query="e-waste")] == ["Ravi"]
        assert len(search_requests(available, query="")) == 2


class TestEndToEnd:
    def test_add_accept_complete(self):
        clock = FakeClock(START)
        store = RequestStore(MemoryStorage(), clock=clock, seed_samples=False)

        req = store.add_request(
            user_id="user_1",
            user_name="Asha",
            waste_types=[{"name": "Plastic", "quantity": 10, "unit": "kg"}],
            total_amount=80,
            address="12 MG Road",
        )
        available = store.get_available_requests()
        assert len(available) == 1
        assert available[0].status == RequestStatus.PENDING

        assert store.accept_request(req.request_id, "worker_9") is True
        assert store.get_available_requests() == []

        clock.advance(minutes=30)
        assert store.update_request_status(req.request_id, "completed") is True

        stats = store.get_worker_stats()
        assert stats.completed_pickups == 1
        assert stats.earnings == 80
