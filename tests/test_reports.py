import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date, datetime, timezone
from io import BytesIO
from openpyxl import load_workbook
from rental_engine.models import BusinessConfig
from rental_engine.catalog import PricingCatalog
from rental_engine.subscriptions import SubscriptionManager
from rental_engine.lockers import LockerManager
from rental_engine.bookings import BookingLedger
from rental_engine.notifications import RecordingNotifier
from rental_engine.reports import COLUMNS, aggregates_frame, export_csv, export_excel, monthly_snapshot

NOW = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)


def populated():
    cfg = BusinessConfig()
    catalog = PricingCatalog(cfg)
    notifier = RecordingNotifier()
    clock = lambda: NOW
    subs = SubscriptionManager(catalog, notifier, clock)
    lockers = LockerManager(catalog, notifier, clock)
    bookings = BookingLedger(catalog, subs, notifier, clock)
    subs.create("Band Eclipse", "band@example.com", "studio-a", [("monday", "morning")])
    subs.create("Jazz Collective", "jazz@example.com", "studio-c", [("friday", "evening")])
    lockers.rent(1, "Tom", "tom@example.com")
    bookings.create("Lisa", "lisa@example.com", "studio-b", date(2026, 3, 18), "evening")
    return cfg, subs, bookings, lockers


def test_monthly_snapshot():
    cfg, subs, bookings, lockers = populated()
    row = monthly_snapshot(cfg, subs, bookings, lockers, 2026, 3)
    assert row["month"] == "2026-03"
    assert row["subscription_revenue"] == 160 + 128
    assert row["booking_revenue"] == 40
    assert row["locker_revenue"] == 40
    assert row["revenue"] == 368
    assert row["expenses"] == 1400
    assert row["profit"] == 368 - 1400
    assert (row["subscriptions"], row["bookings"], row["lockers"]) == (2, 1, 1)
    assert row["occupancy"] == round(2 / 12 * 100, 1)


def test_frame_column_order():
    cfg, subs, bookings, lockers = populated()
    rows = [monthly_snapshot(cfg, subs, bookings, lockers, 2026, m) for m in (3, 4)]
    frame = aggregates_frame(rows)
    assert list(frame.columns) == COLUMNS
    assert list(frame["bookings"]) == [1, 0]


def test_export_csv_header():
    cfg, subs, bookings, lockers = populated()
    text = export_csv([monthly_snapshot(cfg, subs, bookings, lockers, 2026, 3)])
    lines = text.strip().splitlines()
    assert lines[0] == "month,revenue,subscriptions,bookings,lockers,expenses,profit,occupancy%"
    assert lines[1].startswith("2026-03,")
    assert len(lines) == 2


def test_export_excel_loads():
    cfg, subs, bookings, lockers = populated()
    data = export_excel([monthly_snapshot(cfg, subs, bookings, lockers, 2026, 3)])
    ws = load_workbook(BytesIO(data)).active
    assert ws.title == "Monthly report"
    header = [c.value for c in ws[1]]
    assert header[-1] == "occupancy%"
    assert ws["A2"].value == "2026-03"
    assert ws["B2"].value == 368
    assert ws["A1"].font.bold
