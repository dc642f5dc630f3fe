"""Ad-hoc studio bookings and slot availability"""
import logging
import math
import threading
import uuid
from datetime import date, timedelta
from typing import Callable, List, Optional

from config.default_params import HOURS_PER_DAY_PART, WEEKDAYS
from .catalog import PricingCatalog
from .dates import to_date, utc_now
from .errors import CapacityError, ConcurrencyConflict, InvalidTransition, ValidationError
from .models import (
    AvailabilitySlot, Booking, StudioConfig, TimeSlot, SLOT_CATALOG, BOOKING_TYPES,
    BOOKING_STATUSES, BOOKING_TERMINAL, BOOKING_PENDING, BOOKING_CONFIRMED,
    BOOKING_COMPLETED, BOOKING_CANCELLED,
)
from .notifications import Notifier, LoggingNotifier, send, BOOKING_CONFIRMED as EVT_BOOKING_CONFIRMED
from .store import Repository

logger = logging.getLogger(__name__)


def booking_price(studio: StudioConfig, booking_type: str, duration: float) -> float:
    """Hourly bookings pay per hour; daily bookings pay per started day-part of 3 hours"""
    if booking_type == "hourly":
        return studio.hourly_rate * duration
    if booking_type == "daily":
        return studio.day_rate * math.ceil(duration / HOURS_PER_DAY_PART)
    raise ValidationError(f"unknown booking type: {booking_type!r}")


def listed_slots() -> List[TimeSlot]:
    return [s for s in SLOT_CATALOG.values() if s.listed]


def _slot(slot_id: str) -> TimeSlot:
    try:
        return SLOT_CATALOG[slot_id]
    except KeyError:
        raise ValidationError(f"unknown time slot: {slot_id!r}") from None


class BookingLedger:
    def __init__(self, catalog: PricingCatalog, subscriptions=None, notifier: Notifier = None,
                 clock: Callable = utc_now, repository: Repository = None):
        self.catalog = catalog
        self.subscriptions = subscriptions
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.clock = clock
        self.repo = repository if repository is not None else Repository("booking")
        if subscriptions is not None:
            subscriptions.bookings = self
            self._lock = subscriptions.schedule_lock
        else:
            self._lock = threading.RLock()

    def _today(self) -> date:
        return to_date(self.clock())

    # --- availability ----------------------------------------------------
    def conflicts(self, studio_id: str, booking_date, slot_id: str,
                  ignore_id: str = None) -> List[str]:
        """Describe what already occupies an overlapping slot on that day"""
        booking_date = to_date(booking_date)
        wanted = _slot(slot_id)
        found = []
        for b in self.repo.values(where=lambda b: b.studio_id == studio_id and b.date == booking_date):
            if b.id != ignore_id and b.status != BOOKING_CANCELLED and _slot(b.time_slot).overlaps(wanted):
                found.append(f"booking {b.id} ({b.time_slot})")
        if self.subscriptions is not None:
            weekday = WEEKDAYS[booking_date.weekday()]
            for held_studio, held_slot in sorted(self.subscriptions.committed_slots(weekday, booking_date)):
                if held_studio == studio_id and _slot(held_slot).overlaps(wanted):
                    found.append(f"subscription slot {weekday} {held_slot}")
        return found

    def is_available(self, studio_id: str, booking_date, slot_id: str) -> bool:
        return not self.conflicts(studio_id, booking_date, slot_id)

    def available_slots(self, window_days: int = 7, start_date=None) -> List[AvailabilitySlot]:
        """Listed slots for every studio over the next ``window_days`` days, starting today"""
        start = to_date(start_date) if start_date is not None else self._today()
        out = []
        for offset in range(window_days):
            day = start + timedelta(days=offset)
            for studio in self.catalog.studios():
                for slot in listed_slots():
                    out.append(AvailabilitySlot(
                        studio_id=studio.id,
                        date=day,
                        time_slot=slot.id,
                        available=self.is_available(studio.id, day, slot.id),
                    ))
        return out

    # --- lifecycle -------------------------------------------------------
    def create(self, customer_name: str, customer_email: str, studio_id: str, booking_date,
               time_slot: str, booking_type: str = "daily", duration: float = None,
               customer_phone: str = "", notes: str = "") -> Booking:
        if not customer_name or not customer_name.strip():
            raise ValidationError("customer name is required")
        if not customer_email or not customer_email.strip():
            raise ValidationError("customer email is required")
        if booking_type not in BOOKING_TYPES:
            raise ValidationError(f"unknown booking type: {booking_type!r}")
        slot = _slot(time_slot)
        if duration is None:
            duration = slot.hours
        if duration <= 0:
            raise ValidationError("duration must be positive")
        if duration > slot.hours:
            raise ValidationError(f"{slot.id} slot is {slot.hours:g}h long; duration {duration:g}h does not fit")
        studio = self.catalog.get_studio(studio_id)
        booking_date = to_date(booking_date)

        with self._lock:
            taken = self.conflicts(studio.id, booking_date, slot.id)
            if taken:
                raise CapacityError(
                    f"{studio.name} {booking_date} {slot.id} is not available: {', '.join(taken)}")

            now = self.clock()
            booking = Booking(
                id=f"bk-{uuid.uuid4().hex[:10]}",
                customer_name=customer_name.strip(),
                customer_email=customer_email.strip(),
                customer_phone=customer_phone or "",
                studio_id=studio.id,
                studio_name=studio.name,
                date=booking_date,
                time_slot=slot.id,
                duration=duration,
                booking_type=booking_type,
                price=booking_price(studio, booking_type, duration),
                status=BOOKING_PENDING,
                notes=notes or "",
                created_at=now,
                updated_at=now,
            )
            stored = self.repo.add(booking)
        logger.info("Booking %s created: %s %s %s (%.2f)",
                    stored.id, studio.id, booking_date, slot.id, stored.price)
        return stored

    def set_status(self, booking_id: str, new_status: str, expected_version: int = None) -> Booking:
        if new_status not in BOOKING_STATUSES:
            raise ValidationError(f"unknown booking status: {new_status!r}")
        booking = self.repo.get(booking_id)
        if expected_version is not None and expected_version != booking.version:
            raise ConcurrencyConflict(booking_id, expected_version, booking.version)
        if booking.status in BOOKING_TERMINAL or booking.status == new_status:
            raise InvalidTransition(f"set status to {new_status}", booking.status, booking_id)
        read_version = booking.version
        old_status = booking.status
        booking.status = new_status
        booking.updated_at = self.clock()
        stored = self.repo.commit(booking, read_version)
        logger.info("Booking %s: %s -> %s", booking_id, old_status, new_status)
        if new_status == BOOKING_CONFIRMED:
            send(self.notifier, EVT_BOOKING_CONFIRMED, {
                "booking_id": stored.id,
                "customer_name": stored.customer_name,
                "customer_email": stored.customer_email,
                "studio_name": stored.studio_name,
                "date": stored.date.isoformat(),
                "time_slot": stored.time_slot,
                "duration": stored.duration,
                "price": stored.price,
            })
        return stored

    def confirm(self, booking_id: str, expected_version: int = None) -> Booking:
        return self.set_status(booking_id, BOOKING_CONFIRMED, expected_version)

    def complete(self, booking_id: str, expected_version: int = None) -> Booking:
        return self.set_status(booking_id, BOOKING_COMPLETED, expected_version)

    def cancel(self, booking_id: str, expected_version: int = None) -> Booking:
        return self.set_status(booking_id, BOOKING_CANCELLED, expected_version)

    # --- queries ---------------------------------------------------------
    def get(self, booking_id: str) -> Booking:
        return self.repo.get(booking_id)

    def list(self, studio_id: str = None, booking_date=None) -> List[Booking]:
        day: Optional[date] = to_date(booking_date) if booking_date is not None else None
        rows = self.repo.values(where=lambda b: (studio_id is None or b.studio_id == studio_id)
                                and (day is None or b.date == day))
        return sorted(rows, key=lambda b: (b.date, _slot(b.time_slot).start), reverse=True)

    def upcoming(self, studio_id: str, from_date) -> List[Booking]:
        """Non-cancelled bookings of a studio on or after ``from_date``"""
        from_date = to_date(from_date)
        return self.repo.values(where=lambda b: b.studio_id == studio_id and b.date >= from_date
                                and b.status != BOOKING_CANCELLED)

    def in_month(self, year: int, month: int) -> List[Booking]:
        return [b for b in self.repo.values()
                if b.date.year == year and b.date.month == month and b.status != BOOKING_CANCELLED]

    def monthly_stats(self, year: int, month: int) -> dict:
        bookings = self.in_month(year, month)
        revenue = sum(b.price for b in bookings)
        return {
            "count": len(bookings),
            "revenue": revenue,
            "hours": sum(b.duration for b in bookings),
            "average_booking": revenue / len(bookings) if bookings else 0.0,
        }
