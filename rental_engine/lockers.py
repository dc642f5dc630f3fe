"""Locker rentals.

A rental's status is never stored: it is projected from its end date and the
current day by :func:`locker_status`. Terminating a rental deletes the record
and frees the locker immediately (unlike subscriptions, which are archived).
"""
import logging
import threading
import uuid
from datetime import date
from typing import Callable, List, Optional

from config.default_params import EXPIRING_SOON_DAYS
from .catalog import PricingCatalog
from .dates import add_months, days_until, to_date, utc_now
from .errors import CapacityError, ConcurrencyConflict, NotFoundError, ValidationError
from .models import (
    LockerRental, WaitingListEntry, PAYMENT_STATUSES,
    LOCKER_ACTIVE, LOCKER_EXPIRING_SOON, LOCKER_EXPIRED,
)
from .notifications import Notifier, LoggingNotifier, send, LOCKER_RENTED
from .store import Repository

logger = logging.getLogger(__name__)

OCCUPIED_STATUSES = (LOCKER_ACTIVE, LOCKER_EXPIRING_SOON)


def locker_status(end_date: date, today: date) -> str:
    remaining = days_until(end_date, today)
    if remaining <= 0:
        return LOCKER_EXPIRED
    if remaining <= EXPIRING_SOON_DAYS:
        return LOCKER_EXPIRING_SOON
    return LOCKER_ACTIVE


class LockerManager:
    def __init__(self, catalog: PricingCatalog, notifier: Notifier = None,
                 clock: Callable = utc_now, repository: Repository = None):
        self.catalog = catalog
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.clock = clock
        self.repo = repository if repository is not None else Repository("locker rental")
        self._waiting: List[WaitingListEntry] = []
        self._lock = threading.Lock()

    def _today(self) -> date:
        return to_date(self.clock())

    def _load(self, rental_id: str, expected_version: Optional[int]) -> LockerRental:
        rental = self.repo.get(rental_id)
        if expected_version is not None and expected_version != rental.version:
            raise ConcurrencyConflict(rental_id, expected_version, rental.version)
        return rental

    # --- derived state ---------------------------------------------------
    def status_of(self, rental: LockerRental) -> str:
        return locker_status(rental.end_date, self._today())

    def status(self, rental_id: str) -> str:
        return self.status_of(self.repo.get(rental_id))

    def days_until_expiry(self, rental_id: str) -> int:
        return days_until(self.repo.get(rental_id).end_date, self._today())

    def rentals(self) -> List[LockerRental]:
        return sorted(self.repo.values(), key=lambda r: r.locker_number)

    def occupied(self) -> List[LockerRental]:
        return [r for r in self.rentals() if self.status_of(r) in OCCUPIED_STATUSES]

    def occupied_numbers(self) -> set:
        return {r.locker_number for r in self.occupied()}

    def available_numbers(self) -> List[int]:
        taken = self.occupied_numbers()
        return [n for n in range(1, self.catalog.locker_count + 1) if n not in taken]

    def occupancy_rate(self) -> float:
        total = self.catalog.locker_count
        return len(self.occupied()) / total * 100.0 if total else 0.0

    def monthly_revenue(self) -> float:
        return sum(r.monthly_rate for r in self.occupied())

    def expiring_soon(self) -> List[LockerRental]:
        today = self._today()
        soon = [r for r in self.rentals() if locker_status(r.end_date, today) == LOCKER_EXPIRING_SOON]
        return sorted(soon, key=lambda r: r.end_date)

    # --- lifecycle -------------------------------------------------------
    def rent(self, locker_number: int, customer_name: str, customer_email: str,
             start_date=None, duration_months: int = 3, customer_phone: str = "",
             notes: str = "", monthly_rate: float = None) -> LockerRental:
        if not customer_name or not customer_name.strip():
            raise ValidationError("customer name is required")
        if not customer_email or not customer_email.strip():
            raise ValidationError("customer email is required")
        if duration_months is None or duration_months < 1:
            raise ValidationError("rental duration must be at least one month")
        with self._lock:
            if locker_number not in self.available_numbers():
                if 1 <= locker_number <= self.catalog.locker_count:
                    raise CapacityError(f"locker {locker_number} is already occupied")
                raise CapacityError(
                    f"locker {locker_number} does not exist (1..{self.catalog.locker_count})")

            now = self.clock()
            start = to_date(start_date) if start_date is not None else to_date(now)
            rental = LockerRental(
                id=f"lock-{uuid.uuid4().hex[:10]}",
                locker_number=locker_number,
                customer_name=customer_name.strip(),
                customer_email=customer_email.strip(),
                customer_phone=customer_phone or "",
                start_date=start,
                end_date=add_months(start, duration_months),
                monthly_rate=self.catalog.locker_rate if monthly_rate is None else monthly_rate,
                payment_status="pending",
                notes=notes or "",
                created_at=now,
                updated_at=now,
            )
            stored = self.repo.add(rental)
            self._waiting = [w for w in self._waiting
                             if w.email.lower() != stored.customer_email.lower()]
        logger.info("Locker %d rented to %s until %s", locker_number, stored.customer_name, stored.end_date)
        send(self.notifier, LOCKER_RENTED, {
            "rental_id": stored.id,
            "locker_number": stored.locker_number,
            "customer_name": stored.customer_name,
            "customer_email": stored.customer_email,
            "start_date": stored.start_date.isoformat(),
            "end_date": stored.end_date.isoformat(),
            "monthly_rate": stored.monthly_rate,
        })
        return stored

    def extend(self, rental_id: str, months: int, expected_version: int = None) -> LockerRental:
        if months is None or months < 1:
            raise ValidationError("extension must be at least one month")
        with self._lock:
            rental = self._load(rental_id, expected_version)
            read_version = rental.version
            if rental.locker_number in self.occupied_numbers() and self.status_of(rental) == LOCKER_EXPIRED:
                # the locker was re-let after this rental expired
                raise CapacityError(f"locker {rental.locker_number} has been rented to someone else")
            rental.end_date = add_months(rental.end_date, months)
            rental.updated_at = self.clock()
            stored = self.repo.commit(rental, read_version)
        logger.info("Locker %d extended by %d month(s) to %s", stored.locker_number, months, stored.end_date)
        return stored

    def terminate(self, rental_id: str, expected_version: int = None) -> LockerRental:
        removed = self.repo.remove(rental_id, expected_version)
        logger.info("Locker %d released (rental %s removed)", removed.locker_number, rental_id)
        return removed

    def set_payment_status(self, rental_id: str, payment_status: str,
                           expected_version: int = None) -> LockerRental:
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"unknown payment status: {payment_status!r}")
        rental = self._load(rental_id, expected_version)
        read_version = rental.version
        rental.payment_status = payment_status
        rental.updated_at = self.clock()
        return self.repo.commit(rental, read_version)

    def mark_paid(self, rental_id: str, expected_version: int = None) -> LockerRental:
        return self.set_payment_status(rental_id, "paid", expected_version)

    def set_total_count(self, total_count: int) -> int:
        """Resize the locker catalog without orphaning occupied lockers"""
        if total_count < 0:
            raise ValidationError("locker count must be >= 0")
        with self._lock:
            occupied = self.occupied_numbers()
            if total_count < len(occupied):
                raise CapacityError(f"{len(occupied)} lockers are occupied; cannot reduce to {total_count}")
            beyond = sorted(n for n in occupied if n > total_count)
            if beyond:
                raise CapacityError(f"occupied locker(s) {beyond} would fall outside 1..{total_count}")
            self.catalog.cfg.lockers.total_count = total_count
        logger.info("Locker count set to %d", total_count)
        return total_count

    # --- waiting list ----------------------------------------------------
    def join_waiting_list(self, name: str, email: str, request_date=None) -> WaitingListEntry:
        if not name or not name.strip() or not email or not email.strip():
            raise ValidationError("name and email are required for the waiting list")
        if any(w.email.lower() == email.strip().lower() for w in self._waiting):
            raise ValidationError(f"{email} is already on the waiting list")
        entry = WaitingListEntry(
            name=name.strip(),
            email=email.strip(),
            request_date=to_date(request_date) if request_date is not None else self._today(),
        )
        self._waiting.append(entry)
        return entry

    def waiting_list(self) -> List[WaitingListEntry]:
        return sorted(self._waiting, key=lambda w: w.request_date)

    def leave_waiting_list(self, email: str) -> WaitingListEntry:
        for entry in self._waiting:
            if entry.email.lower() == email.strip().lower():
                self._waiting.remove(entry)
                return entry
        raise NotFoundError("waiting list entry", email)
