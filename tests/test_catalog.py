import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from rental_engine.models import BusinessConfig, StudioConfig
from rental_engine.catalog import PricingCatalog, round_half_up
from rental_engine.errors import CapacityError, NotFoundError, ValidationError


def base_catalog():
    return PricingCatalog(BusinessConfig())


def test_add_studio_derives_rates():
    catalog = base_catalog()
    studio = catalog.add_studio("Studio D", 12, size=18, max_capacity=5)
    assert studio.id == "studio-d"
    assert studio.day_rate == 48
    assert studio.monthly_rate == 192
    assert catalog.studios()[-1] is studio


def test_add_studio_rejects_empty_name_and_duplicate_id():
    catalog = base_catalog()
    with pytest.raises(ValidationError):
        catalog.add_studio("   ", 10)
    with pytest.raises(ValidationError):
        catalog.add_studio("Studio A", 10)  # slug collides with studio-a
    assert len(catalog.studios()) == 3


def test_update_hourly_rate_rederives():
    catalog = base_catalog()
    for rate in (0, 7.5, 10, 22):
        studio = catalog.update_studio("studio-c", hourly_rate=rate)
        assert studio.day_rate == rate * 4
        assert studio.monthly_rate == rate * 16


def test_update_other_fields_keeps_manual_overrides():
    catalog = base_catalog()
    catalog.update_studio("studio-a", day_rate=35, monthly_rate=150)
    studio = catalog.update_studio("studio-a", name="Studio Alpha", size=22, max_capacity=8)
    assert studio.name == "Studio Alpha"
    assert studio.day_rate == 35
    assert studio.monthly_rate == 150
    # same hourly rate is not a change
    studio = catalog.update_studio("studio-a", hourly_rate=10)
    assert (studio.day_rate, studio.monthly_rate) == (35, 150)
    # a real hourly change re-derives
    studio = catalog.update_studio("studio-a", hourly_rate=11)
    assert (studio.day_rate, studio.monthly_rate) == (44, 176)


def test_update_rejects_unknown_field_and_blank_name():
    catalog = base_catalog()
    with pytest.raises(ValidationError):
        catalog.update_studio("studio-a", colour="red")
    with pytest.raises(ValidationError):
        catalog.update_studio("studio-a", name="")
    with pytest.raises(NotFoundError):
        catalog.update_studio("studio-z", size=3)


def test_remove_studio_keeps_at_least_one():
    catalog = base_catalog()
    catalog.remove_studio("studio-a")
    catalog.remove_studio("studio-b")
    with pytest.raises(CapacityError):
        catalog.remove_studio("studio-c")
    assert [s.id for s in catalog.studios()] == ["studio-c"]


def test_rate_for():
    catalog = base_catalog()
    assert catalog.rate_for("studio-a", "hourly") == 10
    assert catalog.rate_for("studio-a", "daily") == 40
    assert catalog.rate_for("studio-c", "monthly") == 128
    with pytest.raises(NotFoundError):
        catalog.rate_for("nope", "hourly")
    with pytest.raises(ValidationError):
        catalog.rate_for("studio-a", "weekly")


def test_subscription_price_applies_discounts():
    catalog = base_catalog()
    assert catalog.subscription_price("studio-a", "monthly") == 160
    assert catalog.subscription_price("studio-a", "student") == 144   # -10%
    assert catalog.subscription_price("studio-a", "yearly") == 136    # -15%
    assert catalog.subscription_price("studio-c", "yearly") == 109    # 108.8 rounds up


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(4.5) == 5
    assert round_half_up(1.2) == 1
    assert round_half_up(5.234, 2) == 5.23


def test_locker_catalog():
    catalog = base_catalog()
    assert catalog.locker_count == 8
    assert catalog.locker_rate == 40
    assert catalog.locker_volume() == 5.2
