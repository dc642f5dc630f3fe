import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import threading
import time
from datetime import date, datetime, timedelta, timezone
import pytest
from rental_engine.models import BusinessConfig
from rental_engine.catalog import PricingCatalog
from rental_engine.lockers import LockerManager, locker_status
from rental_engine.subscriptions import SubscriptionManager
from rental_engine.notifications import RecordingNotifier
from rental_engine.errors import CapacityError, ConcurrencyConflict, NotFoundError, ValidationError


class Clock:
    def __init__(self, start=datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_manager(clock=None, notifier=None):
    catalog = PricingCatalog(BusinessConfig())
    return LockerManager(catalog, notifier or RecordingNotifier(), clock or Clock())


def rent(mgr, number, name="Tom Vermeulen", email=None, **kwargs):
    return mgr.rent(number, name, email or f"locker{number}@example.com", **kwargs)


def test_locker_status_boundaries():
    today = date(2026, 3, 10)
    assert locker_status(today + timedelta(days=90), today) == "active"
    assert locker_status(today + timedelta(days=31), today) == "active"
    assert locker_status(today + timedelta(days=30), today) == "expiring-soon"
    assert locker_status(today + timedelta(days=1), today) == "expiring-soon"
    assert locker_status(today, today) == "expired"
    assert locker_status(today - timedelta(days=5), today) == "expired"


def test_rent_locker():
    notifier = RecordingNotifier()
    mgr = make_manager(notifier=notifier)
    rental = rent(mgr, 3)
    assert rental.start_date == date(2026, 3, 10)
    assert rental.end_date == date(2026, 6, 10)
    assert rental.monthly_rate == 40
    assert rental.payment_status == "pending"
    assert mgr.status(rental.id) == "active"
    assert mgr.days_until_expiry(rental.id) == 92
    assert len(notifier.events("locker_rented")) == 1
    assert 3 not in mgr.available_numbers()


def test_status_follows_clock():
    clock = Clock()
    mgr = make_manager(clock=clock)
    rental = rent(mgr, 1, duration_months=1)       # ends 2026-04-10, 31 days out
    assert mgr.status(rental.id) == "active"
    clock.advance(days=1)
    assert mgr.days_until_expiry(rental.id) == 30
    assert mgr.status(rental.id) == "expiring-soon"
    assert [r.id for r in mgr.expiring_soon()] == [rental.id]
    clock.advance(days=29)
    assert mgr.status(rental.id) == "expiring-soon"
    clock.advance(days=1)                          # the end date itself
    assert mgr.status(rental.id) == "expired"
    # an expired rental no longer holds the locker
    assert 1 in mgr.available_numbers()
    assert mgr.occupancy_rate() == 0


def test_rent_rejects_occupied_and_out_of_range():
    mgr = make_manager()
    rent(mgr, 2)
    with pytest.raises(CapacityError):
        rent(mgr, 2, name="Someone Else")
    with pytest.raises(CapacityError):
        rent(mgr, 9)
    with pytest.raises(CapacityError):
        rent(mgr, 0)
    with pytest.raises(ValidationError):
        rent(mgr, 4, name=" ")
    with pytest.raises(ValidationError):
        rent(mgr, 4, duration_months=0)


def test_terminate_removes_record_unlike_cancelled_subscription():
    clock = Clock()
    mgr = make_manager(clock=clock)
    rental = rent(mgr, 5)
    mgr.terminate(rental.id)
    with pytest.raises(NotFoundError):
        mgr.repo.get(rental.id)
    assert 5 in mgr.available_numbers()
    assert rent(mgr, 5, name="Next Tenant").locker_number == 5

    subs = SubscriptionManager(mgr.catalog, RecordingNotifier(), clock)
    sub = subs.create("Band Eclipse", "band@example.com", "studio-a", [("monday", "morning")])
    subs.cancel(sub.id, "stopped rehearsing")
    assert subs.get(sub.id).status == "cancelled"


def test_extend():
    clock = Clock()
    mgr = make_manager(clock=clock)
    rental = rent(mgr, 1, start_date=date(2026, 1, 31), duration_months=1)   # ends 2026-02-28
    extended = mgr.extend(rental.id, 2)
    assert extended.end_date == date(2026, 4, 28)
    assert extended.version == rental.version + 1
    with pytest.raises(ValidationError):
        mgr.extend(rental.id, 0)


def test_extend_expired_rental_after_relet():
    mgr = make_manager()
    old = rent(mgr, 1, start_date=date(2025, 10, 1), duration_months=3)   # expired in January
    rent(mgr, 1, name="New Tenant")
    with pytest.raises(CapacityError):
        mgr.extend(old.id, 3)


def test_occupancy_and_revenue():
    mgr = make_manager()
    rent(mgr, 1)
    assert mgr.occupancy_rate() == 12.5
    assert mgr.monthly_revenue() == 40
    rent(mgr, 2, monthly_rate=35)
    assert mgr.occupancy_rate() == 25.0
    assert mgr.monthly_revenue() == 75


def test_expiring_soon_sorted_by_end_date():
    mgr = make_manager()
    late = rent(mgr, 1, start_date=date(2026, 1, 5), duration_months=3)     # 2026-04-05
    early = rent(mgr, 2, start_date=date(2026, 1, 20), duration_months=2)   # 2026-03-20
    rent(mgr, 3)                                                            # 2026-06-10
    assert [r.id for r in mgr.expiring_soon()] == [early.id, late.id]


def test_payment_status():
    mgr = make_manager()
    rental = rent(mgr, 1)
    assert mgr.mark_paid(rental.id).payment_status == "paid"
    assert mgr.set_payment_status(rental.id, "overdue").payment_status == "overdue"
    with pytest.raises(ValidationError):
        mgr.set_payment_status(rental.id, "waived")


def test_set_total_count():
    mgr = make_manager()
    rent(mgr, 1)
    rent(mgr, 6)
    assert mgr.set_total_count(12) == 12
    assert mgr.catalog.locker_count == 12
    assert len(mgr.available_numbers()) == 10
    with pytest.raises(CapacityError):
        mgr.set_total_count(1)
    with pytest.raises(CapacityError):
        mgr.set_total_count(5)   # locker 6 is occupied
    assert mgr.catalog.locker_count == 12
    assert mgr.set_total_count(6) == 6


def test_waiting_list():
    mgr = make_manager()
    mgr.join_waiting_list("Ann", "ann@example.com", request_date=date(2026, 3, 2))
    mgr.join_waiting_list("Bob", "bob@example.com", request_date=date(2026, 2, 20))
    with pytest.raises(ValidationError):
        mgr.join_waiting_list("Ann again", "ANN@example.com")
    assert [w.name for w in mgr.waiting_list()] == ["Bob", "Ann"]

    # renting to someone on the list takes them off it
    rent(mgr, 1, name="Bob", email="bob@example.com")
    assert [w.name for w in mgr.waiting_list()] == ["Ann"]
    assert mgr.leave_waiting_list("ann@example.com").name == "Ann"
    with pytest.raises(NotFoundError):
        mgr.leave_waiting_list("ann@example.com")


class SlowClock(Clock):
    """Widens the gap between the availability check and the insert"""

    def __call__(self):
        time.sleep(0.05)
        return self.now


def run_concurrently(action, count=2):
    barrier = threading.Barrier(count)
    outcomes = []

    def worker(n):
        barrier.wait()
        try:
            action(n)
            outcomes.append("ok")
        except CapacityError:
            outcomes.append("capacity")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return sorted(outcomes)


def test_concurrent_rent_of_same_locker_admits_one_tenant():
    mgr = make_manager(clock=SlowClock())
    outcomes = run_concurrently(lambda n: rent(mgr, 3, name=f"Tenant {n}", email=f"t{n}@example.com"))
    assert outcomes == ["capacity", "ok"]
    assert [r.locker_number for r in mgr.rentals()] == [3]


def test_stale_extend_is_rejected():
    mgr = make_manager()
    rental = rent(mgr, 1)
    mgr.extend(rental.id, 1, expected_version=rental.version)
    with pytest.raises(ConcurrencyConflict):
        mgr.extend(rental.id, 6, expected_version=rental.version)
    current = mgr.repo.get(rental.id)
    assert current.end_date == date(2026, 7, 10)
    assert current.version == 2


def test_stale_terminate_is_rejected():
    mgr = make_manager()
    rental = rent(mgr, 1)
    mgr.mark_paid(rental.id)
    with pytest.raises(ConcurrencyConflict):
        mgr.terminate(rental.id, expected_version=rental.version)
    assert mgr.repo.get(rental.id).payment_status == "paid"
    assert 1 not in mgr.available_numbers()
    mgr.terminate(rental.id, expected_version=2)
    assert 1 in mgr.available_numbers()
