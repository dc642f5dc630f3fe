"""Studio rate schedule and locker catalog"""
import logging
import math
import re
from typing import List

from config.default_params import DAY_RATE_MULTIPLIER, MONTHLY_RATE_MULTIPLIER
from .models import BusinessConfig, StudioConfig, SUBSCRIPTION_TYPES
from .errors import CapacityError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EDITABLE_STUDIO_FIELDS = ("name", "size", "hourly_rate", "day_rate", "monthly_rate", "max_capacity")


def round_half_up(x: float, digits: int = 0) -> float:
    """Round half away from zero for non-negative amounts (2.5 -> 3)"""
    q = 10 ** digits
    return math.floor(x * q + 0.5) / q


def derived_rates(hourly_rate: float) -> dict:
    return {
        "day_rate": hourly_rate * DAY_RATE_MULTIPLIER,
        "monthly_rate": hourly_rate * MONTHLY_RATE_MULTIPLIER,
    }


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")


def _check_non_negative(values: dict):
    for key in ("size", "hourly_rate", "day_rate", "monthly_rate", "max_capacity"):
        if key in values and values[key] is not None and values[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


class PricingCatalog:
    """Lookup and edit operations over the studios and lockers of a BusinessConfig.

    The catalog edits the config it was given in place, so a manager sharing the
    same config always sees the current rates.
    """

    def __init__(self, cfg: BusinessConfig = None):
        self.cfg = cfg if cfg is not None else BusinessConfig()

    # --- studios ---------------------------------------------------------
    def studios(self) -> List[StudioConfig]:
        return list(self.cfg.studios)

    def get_studio(self, studio_id: str) -> StudioConfig:
        for studio in self.cfg.studios:
            if studio.id == studio_id:
                return studio
        raise NotFoundError("studio", studio_id)

    def has_studio(self, studio_id: str) -> bool:
        return any(s.id == studio_id for s in self.cfg.studios)

    def add_studio(self, name: str, hourly_rate: float, size: float = 0.0,
                   max_capacity: int = 0, studio_id: str = None) -> StudioConfig:
        if not name or not name.strip():
            raise ValidationError("studio name is required")
        studio_id = studio_id or _slug(name)
        if not studio_id:
            raise ValidationError(f"cannot derive an identifier from name {name!r}")
        if self.has_studio(studio_id):
            raise ValidationError(f"studio id '{studio_id}' already exists")
        _check_non_negative({"hourly_rate": hourly_rate, "size": size, "max_capacity": max_capacity})

        studio = StudioConfig(
            id=studio_id,
            name=name.strip(),
            size=size,
            hourly_rate=hourly_rate,
            max_capacity=max_capacity,
            **derived_rates(hourly_rate),
        )
        self.cfg.studios.append(studio)
        logger.info("Added studio %s (%s) at %.2f/h", studio.id, studio.name, hourly_rate)
        return studio

    def update_studio(self, studio_id: str, **changes) -> StudioConfig:
        """Apply a partial edit.

        Day and monthly rates are re-derived only when ``hourly_rate`` actually
        changes; otherwise manual day/monthly overrides are left alone.
        """
        studio = self.get_studio(studio_id)
        unknown = set(changes) - set(EDITABLE_STUDIO_FIELDS)
        if unknown:
            raise ValidationError(f"unknown studio field(s): {', '.join(sorted(unknown))}")
        if "name" in changes and (not changes["name"] or not changes["name"].strip()):
            raise ValidationError("studio name is required")
        _check_non_negative(changes)

        hourly_changed = "hourly_rate" in changes and changes["hourly_rate"] != studio.hourly_rate
        for key, value in changes.items():
            setattr(studio, key, value.strip() if key == "name" else value)
        if hourly_changed:
            for key, value in derived_rates(studio.hourly_rate).items():
                setattr(studio, key, value)

        logger.info("Updated studio %s: %s", studio_id, sorted(changes))
        return studio

    def remove_studio(self, studio_id: str) -> StudioConfig:
        studio = self.get_studio(studio_id)
        if len(self.cfg.studios) <= 1:
            raise CapacityError("at least one studio must remain in the catalog")
        self.cfg.studios = [s for s in self.cfg.studios if s.id != studio_id]
        logger.info("Removed studio %s", studio_id)
        return studio

    # --- pricing ---------------------------------------------------------
    def rate_for(self, studio_id: str, booking_type: str) -> float:
        studio = self.get_studio(studio_id)
        if booking_type == "hourly":
            return studio.hourly_rate
        if booking_type == "daily":
            return studio.day_rate
        if booking_type == "monthly":
            return studio.monthly_rate
        raise ValidationError(f"unknown booking type: {booking_type!r}")

    def subscription_price(self, studio_id: str, subscription_type: str = "monthly") -> float:
        if subscription_type not in SUBSCRIPTION_TYPES:
            raise ValidationError(f"unknown subscription type: {subscription_type!r}")
        price = self.get_studio(studio_id).monthly_rate
        if subscription_type == "student":
            price = price * (1 - self.cfg.discounts.student / 100.0)
        elif subscription_type == "yearly":
            price = price * (1 - self.cfg.discounts.bulk / 100.0)
        return round_half_up(price)

    # --- lockers ---------------------------------------------------------
    @property
    def locker_count(self) -> int:
        return self.cfg.lockers.total_count

    @property
    def locker_rate(self) -> float:
        return self.cfg.lockers.monthly_rate

    def locker_volume(self) -> float:
        """Locker volume in m³"""
        d = self.cfg.lockers.dimensions
        return round_half_up(d.width * d.height * d.depth / 1_000_000, 2)
