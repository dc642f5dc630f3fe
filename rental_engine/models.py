from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import List, Optional

from config.default_params import (
    DEFAULT_STUDIOS, DEFAULT_LOCKERS, DEFAULT_OPERATIONAL_COSTS, DEFAULT_DISCOUNTS,
    DEFAULT_BREAK_EVEN, DEFAULT_PARTNERS, TIME_SLOTS,
)
from .errors import ValidationError

# Subscription statuses
SUB_ACTIVE = "active"
SUB_PAUSED = "paused"
SUB_OVERDUE = "overdue"
SUB_CANCELLED = "cancelled"
SUBSCRIPTION_STATUSES = (SUB_ACTIVE, SUB_PAUSED, SUB_OVERDUE, SUB_CANCELLED)
SUBSCRIPTION_TYPES = ("monthly", "yearly", "student")

# Locker statuses (derived from end date)
LOCKER_ACTIVE = "active"
LOCKER_EXPIRING_SOON = "expiring-soon"
LOCKER_EXPIRED = "expired"
PAYMENT_STATUSES = ("paid", "pending", "overdue")

# Booking statuses
BOOKING_PENDING = "pending"
BOOKING_CONFIRMED = "confirmed"
BOOKING_COMPLETED = "completed"
BOOKING_CANCELLED = "cancelled"
BOOKING_STATUSES = (BOOKING_PENDING, BOOKING_CONFIRMED, BOOKING_COMPLETED, BOOKING_CANCELLED)
BOOKING_TERMINAL = (BOOKING_COMPLETED, BOOKING_CANCELLED)
BOOKING_TYPES = ("hourly", "daily")


@dataclass
class StudioConfig:
    id: str
    name: str
    size: float = 0.0            # m²
    hourly_rate: float = 0.0
    day_rate: float = 0.0
    monthly_rate: float = 0.0
    max_capacity: int = 0


@dataclass
class LockerDimensions:
    width: float = 100.0   # cm
    height: float = 200.0
    depth: float = 260.0


@dataclass
class LockerConfig:
    monthly_rate: float = 40.0
    total_count: int = 8
    dimensions: LockerDimensions = None

    def __post_init__(self):
        if self.dimensions is None:
            self.dimensions = LockerDimensions(**DEFAULT_LOCKERS['dimensions'])
        elif isinstance(self.dimensions, dict):
            self.dimensions = LockerDimensions(**self.dimensions)
        if self.total_count < 0:
            raise ValidationError("locker total_count must be >= 0")


@dataclass
class OperationalCosts:
    """Monthly operating expenses by category"""
    rent: float = 0.0
    utilities: float = 0.0
    insurance: float = 0.0
    maintenance: float = 0.0
    administration: float = 0.0
    marketing: float = 0.0
    booking_system: float = 0.0
    security: float = 0.0
    access: float = 0.0
    cleaning: float = 0.0
    copyright_fees: float = 0.0
    waste: float = 0.0
    reserves: float = 0.0
    miscellaneous: float = 0.0

    def __post_init__(self):
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ValidationError(f"operating cost '{f.name}' must be >= 0")

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class Discounts:
    student: float = 10.0  # %
    bulk: float = 15.0     # %


@dataclass
class BreakEvenTargets:
    target_monthly_revenue: float = 1400.0
    minimum_occupancy_rate: float = 58.0


@dataclass
class PartnerSplit:
    count: int = 2
    profit_split_percentage: float = 50.0

    def __post_init__(self):
        if self.count < 1:
            raise ValidationError("partner count must be >= 1")


@dataclass
class BusinessConfig:
    studios: List[StudioConfig] = None
    lockers: LockerConfig = None
    costs: OperationalCosts = None
    discounts: Discounts = None
    break_even: BreakEvenTargets = None
    partners: PartnerSplit = None

    def __post_init__(self):
        if self.studios is None:
            self.studios = [StudioConfig(**s) for s in DEFAULT_STUDIOS]
        if self.lockers is None:
            self.lockers = LockerConfig(**DEFAULT_LOCKERS)
        if self.costs is None:
            self.costs = OperationalCosts(**DEFAULT_OPERATIONAL_COSTS)
        if self.discounts is None:
            self.discounts = Discounts(**DEFAULT_DISCOUNTS)
        if self.break_even is None:
            self.break_even = BreakEvenTargets(**DEFAULT_BREAK_EVEN)
        if self.partners is None:
            self.partners = PartnerSplit(**DEFAULT_PARTNERS)


@dataclass(frozen=True)
class TimeSlot:
    id: str
    label: str
    start: float
    end: float
    hours: float
    listed: bool = True

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and other.start < self.end


SLOT_CATALOG = {s['id']: TimeSlot(**s) for s in TIME_SLOTS}


@dataclass(frozen=True)
class ScheduleSlot:
    day: str        # weekday name, e.g. "monday"
    time_slot: str  # SLOT_CATALOG id


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    action: str
    date: datetime
    actor: str
    details: str = ""
    old_value: Optional[str] = None
    new_value: Optional[str] = None


@dataclass
class Subscription:
    id: str
    customer_name: str
    customer_email: str
    studio_id: str
    studio_name: str
    schedule: List[ScheduleSlot]
    start_date: date
    next_billing: date
    monthly_price: float
    subscription_type: str = "monthly"
    status: str = SUB_ACTIVE
    customer_phone: str = ""
    notes: str = ""
    pause_reason: Optional[str] = None
    paused_date: Optional[date] = None
    cancel_reason: Optional[str] = None
    cancelled_date: Optional[date] = None
    history: List[HistoryEntry] = field(default_factory=list)
    created_at: datetime = None
    updated_at: datetime = None
    version: int = 0


@dataclass
class LockerRental:
    """Status is not stored; see lockers.locker_status"""
    id: str
    locker_number: int
    customer_name: str
    customer_email: str
    start_date: date
    end_date: date
    monthly_rate: float
    payment_status: str = "pending"
    customer_phone: str = ""
    notes: str = ""
    created_at: datetime = None
    updated_at: datetime = None
    version: int = 0


@dataclass(frozen=True)
class WaitingListEntry:
    name: str
    email: str
    request_date: date


@dataclass
class Booking:
    id: str
    customer_name: str
    customer_email: str
    studio_id: str
    studio_name: str
    date: date
    time_slot: str
    duration: float  # hours
    booking_type: str
    price: float
    status: str = BOOKING_PENDING
    customer_phone: str = ""
    notes: str = ""
    created_at: datetime = None
    updated_at: datetime = None
    version: int = 0


@dataclass(frozen=True)
class AvailabilitySlot:
    studio_id: str
    date: date
    time_slot: str
    available: bool
