"""Subscription lifecycle: status transitions with an append-only audit trail.

Transition table (anything else raises InvalidTransition):

    pause           active                      -> paused
    resume          paused                      -> active
    mark_overdue    active                      -> overdue
    record_payment  overdue                     -> active
    cancel          active | paused | overdue   -> cancelled   (terminal, archived)
    update          any but cancelled           -> unchanged
    add_note        any                         -> unchanged

Each successful call appends exactly one HistoryEntry.
"""
import logging
import threading
import uuid
from collections import Counter
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from config.default_params import WEEKDAYS
from .catalog import PricingCatalog
from .dates import add_months, to_date, utc_now
from .errors import CapacityError, ConcurrencyConflict, InvalidTransition, ValidationError
from .models import (
    HistoryEntry, ScheduleSlot, Subscription, SLOT_CATALOG, SUBSCRIPTION_TYPES,
    SUB_ACTIVE, SUB_PAUSED, SUB_OVERDUE, SUB_CANCELLED,
)
from .notifications import (
    Notifier, LoggingNotifier, send,
    SUBSCRIPTION_CREATED, SUBSCRIPTION_PAUSED, SUBSCRIPTION_RESUMED, SUBSCRIPTION_CANCELLED,
    PAYMENT_REMINDER,
)
from .store import Repository

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("customer_name", "customer_email", "customer_phone", "monthly_price",
                    "subscription_type", "schedule")


def _require(value, what: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{what} is required")
    return str(value).strip()


def normalize_schedule(schedule: Iterable) -> List[ScheduleSlot]:
    """Accept ScheduleSlot, (day, slot) tuples or {'day', 'time_slot'} dicts"""
    slots = []
    seen_days = set()
    for item in schedule or []:
        if isinstance(item, ScheduleSlot):
            day, slot = item.day, item.time_slot
        elif isinstance(item, dict):
            day, slot = item.get("day"), item.get("time_slot")
        else:
            day, slot = item
        day = _require(day, "schedule day").lower()
        slot = _require(slot, "schedule time slot")
        if day not in WEEKDAYS:
            raise ValidationError(f"unknown weekday: {day!r}")
        if slot not in SLOT_CATALOG or not SLOT_CATALOG[slot].listed:
            raise ValidationError(f"unknown time slot: {slot!r}")
        if day in seen_days:
            raise ValidationError(f"{day} appears more than once in the schedule")
        seen_days.add(day)
        slots.append(ScheduleSlot(day=day, time_slot=slot))
    if not slots:
        raise ValidationError("a subscription needs at least one scheduled day-part")
    return slots


class SubscriptionManager:
    def __init__(self, catalog: PricingCatalog, notifier: Notifier = None,
                 clock: Callable = utc_now, repository: Repository = None):
        self.catalog = catalog
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.clock = clock
        self.repo = repository if repository is not None else Repository("subscription")
        # held across slot check + insert; a BookingLedger shares it
        self.schedule_lock = threading.RLock()
        self.bookings = None

    # --- helpers ---------------------------------------------------------
    def _today(self):
        return to_date(self.clock())

    def _entry(self, sub: Subscription, action: str, actor: str, details: str = "",
               old_value: str = None, new_value: str = None) -> HistoryEntry:
        return HistoryEntry(
            id=f"{sub.id}-h{len(sub.history) + 1}",
            action=action,
            date=self.clock(),
            actor=actor,
            details=details,
            old_value=old_value,
            new_value=new_value,
        )

    def _load(self, sub_id: str, expected_version: Optional[int]) -> Subscription:
        sub = self.repo.get(sub_id)
        if expected_version is not None and expected_version != sub.version:
            raise ConcurrencyConflict(sub_id, expected_version, sub.version)
        return sub

    def _transition(self, sub_id: str, action: str, allowed_from: Tuple[str, ...],
                    new_status: str, mutate: Callable[[Subscription], None], actor: str,
                    details: str, expected_version: Optional[int]) -> Subscription:
        sub = self._load(sub_id, expected_version)
        if sub.status not in allowed_from:
            raise InvalidTransition(action, sub.status, sub_id)
        read_version = sub.version
        old_status = sub.status
        mutate(sub)
        sub.status = new_status
        sub.history.append(self._entry(sub, action, actor, details, old_status, new_status))
        sub.updated_at = self.clock()
        if new_status == SUB_CANCELLED:
            stored = self.repo.archive(sub, read_version)
        else:
            stored = self.repo.commit(sub, read_version)
        logger.info("Subscription %s: %s (%s -> %s)", sub_id, action, old_status, new_status)
        return stored

    def _payload(self, sub: Subscription, **extra) -> dict:
        payload = {
            "subscription_id": sub.id,
            "customer_name": sub.customer_name,
            "customer_email": sub.customer_email,
            "studio_name": sub.studio_name,
            "monthly_price": sub.monthly_price,
            "next_billing": sub.next_billing.isoformat(),
        }
        payload.update(extra)
        return payload

    def _check_schedule(self, studio_id: str, slots: List[ScheduleSlot], from_date,
                        ignore_id: str = None):
        """Raise CapacityError if a weekly slot is already held or booked.

        Call with ``schedule_lock`` held.
        """
        wanted = {}
        for slot in slots:
            wanted.setdefault(slot.day, []).append(SLOT_CATALOG[slot.time_slot])
        holders = self.repo.values(where=lambda s: s.id != ignore_id and s.studio_id == studio_id
                                   and s.status in (SUB_ACTIVE, SUB_OVERDUE))
        for other in holders:
            for held in other.schedule:
                if any(SLOT_CATALOG[held.time_slot].overlaps(w) for w in wanted.get(held.day, [])):
                    raise CapacityError(
                        f"{studio_id} {held.day} {held.time_slot} is held by subscription {other.id}")
        if self.bookings is not None:
            for booking in self.bookings.upcoming(studio_id, from_date):
                day = WEEKDAYS[booking.date.weekday()]
                if any(SLOT_CATALOG[booking.time_slot].overlaps(w) for w in wanted.get(day, [])):
                    raise CapacityError(
                        f"{studio_id} {booking.date} {booking.time_slot} is booked ({booking.id})")

    # --- lifecycle -------------------------------------------------------
    def create(self, customer_name: str, customer_email: str, studio_id: str, schedule,
               start_date=None, subscription_type: str = "monthly", monthly_price: float = None,
               customer_phone: str = "", notes: str = "", actor: str = "system") -> Subscription:
        name = _require(customer_name, "customer name")
        email = _require(customer_email, "customer email")
        if subscription_type not in SUBSCRIPTION_TYPES:
            raise ValidationError(f"unknown subscription type: {subscription_type!r}")
        studio = self.catalog.get_studio(studio_id)
        slots = normalize_schedule(schedule)
        if monthly_price is None:
            monthly_price = self.catalog.subscription_price(studio_id, subscription_type)
        elif monthly_price < 0:
            raise ValidationError("monthly price must be >= 0")

        now = self.clock()
        start = to_date(start_date) if start_date is not None else to_date(now)
        sub = Subscription(
            id=f"sub-{uuid.uuid4().hex[:10]}",
            customer_name=name,
            customer_email=email,
            customer_phone=customer_phone or "",
            studio_id=studio.id,
            studio_name=studio.name,
            schedule=slots,
            start_date=start,
            next_billing=add_months(start, 1),
            monthly_price=monthly_price,
            subscription_type=subscription_type,
            status=SUB_ACTIVE,
            notes=notes or "",
            created_at=now,
            updated_at=now,
        )
        sub.history.append(self._entry(
            sub, "created", actor,
            f"{subscription_type} subscription for {studio.name} at {monthly_price:.2f}/month",
            None, SUB_ACTIVE,
        ))
        with self.schedule_lock:
            self._check_schedule(studio.id, slots, max(start, to_date(now)))
            stored = self.repo.add(sub)
        logger.info("Created subscription %s for %s in %s", stored.id, name, studio.id)
        send(self.notifier, SUBSCRIPTION_CREATED, self._payload(stored, schedule=[
            {"day": s.day, "time_slot": s.time_slot} for s in stored.schedule]))
        return stored

    def pause(self, sub_id: str, reason: str = None, actor: str = "system",
              expected_version: int = None) -> Subscription:
        today = self._today()
        reason = (reason or "").strip() or None

        def mutate(sub):
            sub.pause_reason = reason
            sub.paused_date = today

        stored = self._transition(sub_id, "paused", (SUB_ACTIVE,), SUB_PAUSED, mutate,
                                  actor, reason or "Subscription paused", expected_version)
        send(self.notifier, SUBSCRIPTION_PAUSED, self._payload(stored, reason=reason))
        return stored

    def resume(self, sub_id: str, actor: str = "system", expected_version: int = None) -> Subscription:
        today = self._today()

        def mutate(sub):
            self._check_schedule(sub.studio_id, sub.schedule, today, ignore_id=sub.id)
            sub.pause_reason = None
            sub.paused_date = None
            sub.next_billing = add_months(today, 1)

        with self.schedule_lock:
            stored = self._transition(sub_id, "resumed", (SUB_PAUSED,), SUB_ACTIVE, mutate,
                                      actor, "Subscription resumed", expected_version)
        send(self.notifier, SUBSCRIPTION_RESUMED, self._payload(stored))
        return stored

    def cancel(self, sub_id: str, reason: str, actor: str = "system",
               expected_version: int = None) -> Subscription:
        reason = _require(reason, "cancellation reason")
        today = self._today()

        def mutate(sub):
            sub.cancel_reason = reason
            sub.cancelled_date = today

        stored = self._transition(sub_id, "cancelled", (SUB_ACTIVE, SUB_PAUSED, SUB_OVERDUE),
                                  SUB_CANCELLED, mutate, actor, reason, expected_version)
        send(self.notifier, SUBSCRIPTION_CANCELLED, self._payload(stored, reason=reason))
        return stored

    def mark_overdue(self, sub_id: str, actor: str = "billing",
                     expected_version: int = None) -> Subscription:
        """Entry point for the billing collaborator when a cycle is missed"""
        return self._transition(sub_id, "marked_overdue", (SUB_ACTIVE,), SUB_OVERDUE,
                                lambda sub: None, actor, "Billing cycle missed", expected_version)

    def record_payment(self, sub_id: str, actor: str = "billing",
                       expected_version: int = None) -> Subscription:
        def mutate(sub):
            sub.next_billing = add_months(sub.next_billing, 1)

        return self._transition(sub_id, "payment_recorded", (SUB_OVERDUE,), SUB_ACTIVE, mutate,
                                actor, "Overdue payment received", expected_version)

    def add_note(self, sub_id: str, text: str, actor: str = "system",
                 expected_version: int = None) -> Subscription:
        text = _require(text, "note text")
        sub = self._load(sub_id, expected_version)
        read_version = sub.version
        now = self.clock()
        line = f"[{now:%Y-%m-%d %H:%M}] {text}"
        sub.notes = f"{sub.notes}\n{line}" if sub.notes else line
        sub.history.append(self._entry(sub, "note_added", actor, text))
        sub.updated_at = now
        stored = self.repo.commit(sub, read_version)
        logger.info("Subscription %s: note added", sub_id)
        return stored

    def update(self, sub_id: str, actor: str = "system", expected_version: int = None,
               **changes) -> Subscription:
        """Free-form edit of contact, price, type or schedule"""
        if not changes:
            raise ValidationError("nothing to update")
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"field(s) cannot be updated: {', '.join(sorted(unknown))}")
        for key in ("customer_name", "customer_email"):
            if key in changes:
                changes[key] = _require(changes[key], key.replace("_", " "))
        if "subscription_type" in changes and changes["subscription_type"] not in SUBSCRIPTION_TYPES:
            raise ValidationError(f"unknown subscription type: {changes['subscription_type']!r}")
        if "monthly_price" in changes and (changes["monthly_price"] is None or changes["monthly_price"] < 0):
            raise ValidationError("monthly price must be >= 0")
        if "schedule" in changes:
            changes["schedule"] = normalize_schedule(changes["schedule"])

        with self.schedule_lock:
            sub = self._load(sub_id, expected_version)
            if sub.status == SUB_CANCELLED:
                raise InvalidTransition("update", sub.status, sub_id)
            if "schedule" in changes and sub.status in (SUB_ACTIVE, SUB_OVERDUE):
                self._check_schedule(sub.studio_id, changes["schedule"],
                                     max(sub.start_date, self._today()), ignore_id=sub.id)
            read_version = sub.version

            before = {k: getattr(sub, k) for k in changes}
            sub = replace(sub, **changes)
            summary = "; ".join(f"{k}: {before[k]!r} -> {changes[k]!r}" for k in sorted(changes))
            old_value = new_value = None
            if len(changes) == 1:
                (key,) = changes
                old_value, new_value = str(before[key]), str(changes[key])
            sub.history.append(self._entry(sub, "updated", actor, summary, old_value, new_value))
            sub.updated_at = self.clock()
            stored = self.repo.commit(sub, read_version)
        logger.info("Subscription %s updated: %s", sub_id, sorted(changes))
        return stored

    # --- queries ---------------------------------------------------------
    def get(self, sub_id: str) -> Subscription:
        return self.repo.get(sub_id)

    def history(self, sub_id: str) -> List[HistoryEntry]:
        return list(self.repo.get(sub_id).history)

    def list(self, status: str = None) -> List[Subscription]:
        subs = self.repo.values(where=lambda s: status is None or s.status == status)
        return sorted(subs, key=lambda s: s.created_at, reverse=True)

    def active_count(self) -> int:
        return len(self.list(SUB_ACTIVE))

    def monthly_recurring_revenue(self) -> float:
        return sum(s.monthly_price for s in self.list(SUB_ACTIVE))

    def average_subscription_value(self) -> float:
        active = self.list(SUB_ACTIVE)
        return self.monthly_recurring_revenue() / len(active) if active else 0.0

    def subscribers_per_studio(self) -> Dict[str, int]:
        counts = {s.id: 0 for s in self.catalog.studios()}
        counts.update(Counter(s.studio_id for s in self.list(SUB_ACTIVE)))
        return counts

    def committed_slots(self, weekday: str, on_date=None) -> Set[Tuple[str, str]]:
        """(studio_id, time_slot) pairs held by subscribers on a weekday.

        With ``on_date``, subscriptions starting after that day are left out.
        """
        weekday = weekday.lower()
        on_date = to_date(on_date) if on_date is not None else None
        held = set()
        for sub in self.repo.values(where=lambda s: s.status in (SUB_ACTIVE, SUB_OVERDUE)
                                    and (on_date is None or s.start_date <= on_date)):
            for slot in sub.schedule:
                if slot.day == weekday:
                    held.add((sub.studio_id, slot.time_slot))
        return held

    def send_payment_reminders(self, within_days: int = 3) -> int:
        """Remind customers whose next billing is near (or already overdue)"""
        today = self._today()
        sent = 0
        for sub in self.list():
            due_in = (sub.next_billing - today).days
            if sub.status == SUB_OVERDUE or (sub.status == SUB_ACTIVE and due_in <= within_days):
                if send(self.notifier, PAYMENT_REMINDER, self._payload(sub, due_in_days=due_in)):
                    sent += 1
        logger.info("Sent %d payment reminder(s)", sent)
        return sent
