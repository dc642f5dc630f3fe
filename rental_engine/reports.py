"""Monthly aggregates for dashboards and exports"""
from datetime import date
from io import BytesIO
from typing import List

import pandas as pd
from openpyxl.styles import Font

from .calculator import subscription_capacity, total_monthly_costs
from .dates import month_label

COLUMNS = ["month", "revenue", "subscriptions", "bookings", "lockers", "expenses", "profit", "occupancy"]
CSV_HEADERS = {"occupancy": "occupancy%"}


def monthly_snapshot(cfg, subscriptions, bookings, lockers, year: int, month: int) -> dict:
    """One aggregate row for a month from the current state of the managers.

    Subscriptions and lockers count as they stand today; bookings are those
    dated in the month and not cancelled.
    """
    booking_stats = bookings.monthly_stats(year, month)
    mrr = subscriptions.monthly_recurring_revenue()
    locker_rev = lockers.monthly_revenue()
    revenue = mrr + booking_stats["revenue"] + locker_rev
    expenses = total_monthly_costs(cfg.costs)
    active = subscriptions.active_count()
    capacity = subscription_capacity(cfg)
    return {
        "month": month_label(date(year, month, 1)),
        "revenue": revenue,
        "subscriptions": active,
        "bookings": booking_stats["count"],
        "lockers": len(lockers.occupied()),
        "expenses": expenses,
        "profit": revenue - expenses,
        "occupancy": round(active / capacity * 100.0, 1) if capacity else 0.0,
        "subscription_revenue": mrr,
        "booking_revenue": booking_stats["revenue"],
        "locker_revenue": locker_rev,
    }


def aggregates_frame(rows: List[dict]) -> pd.DataFrame:
    """Rows in the fixed export column order"""
    return pd.DataFrame(rows, columns=COLUMNS)


def export_csv(rows: List[dict]) -> str:
    return aggregates_frame(rows).rename(columns=CSV_HEADERS).to_csv(index=False)


def export_excel(rows: List[dict], sheet_title: str = "Monthly report") -> bytes:
    frame = aggregates_frame(rows).rename(columns=CSV_HEADERS)
    bio = BytesIO()
    with pd.ExcelWriter(bio, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=sheet_title, index=False)
        ws = writer.sheets[sheet_title]
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for col in ws.iter_cols(min_col=2, max_col=len(COLUMNS), min_row=2):
            for cell in col:
                cell.number_format = "#,##0.00"
    bio.seek(0)
    return bio.read()
