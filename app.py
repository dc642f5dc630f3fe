"""
Studio Rental Manager - Engine UI
A minimal Streamlit interface that uses the engine as the single source of truth
"""

import logging

import pandas as pd
import streamlit as st

from rental_engine.bookings import BookingLedger, listed_slots
from rental_engine.catalog import PricingCatalog
from rental_engine.config_store import load_config, save_config
from rental_engine.errors import RentalEngineError
from rental_engine.lockers import LockerManager
from rental_engine.models import SLOT_CATALOG, SUBSCRIPTION_TYPES, SUB_ACTIVE, SUB_PAUSED
from rental_engine.notifications import LoggingNotifier
from rental_engine.subscriptions import SubscriptionManager
from config.default_params import WEEKDAYS
from components.dashboard_tab import render_dashboard_tab
from components.reports_tab import render_reports_tab

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(
    page_title="Studio Rental Manager",
    page_icon="🎸",
    layout="wide"
)


def init_state():
    """Build the managers once per session"""
    if "catalog" in st.session_state:
        return
    cfg = load_config()
    notifier = LoggingNotifier()
    catalog = PricingCatalog(cfg)
    subs = SubscriptionManager(catalog, notifier)
    st.session_state.catalog = catalog
    st.session_state.subscriptions = subs
    st.session_state.lockers = LockerManager(catalog, notifier)
    st.session_state.bookings = BookingLedger(catalog, subs, notifier)


def run(action, success_msg):
    """Execute an engine call and surface errors as messages"""
    try:
        result = action()
    except RentalEngineError as exc:
        st.error(str(exc))
        return None
    st.success(success_msg)
    return result


def studio_options(catalog):
    return {s.name: s.id for s in catalog.studios()}


def render_subscriptions_tab(catalog, subs):
    st.header("Subscriptions")
    col1, col2, col3 = st.columns(3)
    col1.metric("Active", subs.active_count())
    col2.metric("Recurring Revenue", f"€{subs.monthly_recurring_revenue():,.0f}")
    col3.metric("Overdue", len(subs.list("overdue")))

    with st.expander("New subscription"):
        studios = studio_options(catalog)
        name = st.text_input("Customer name", key="sub_name")
        email = st.text_input("Customer email", key="sub_email")
        studio = st.selectbox("Studio", list(studios), key="sub_studio")
        sub_type = st.selectbox("Type", SUBSCRIPTION_TYPES, key="sub_type")
        days = st.multiselect("Days", WEEKDAYS, key="sub_days")
        slot = st.selectbox("Time slot", [s.id for s in listed_slots()], key="sub_slot",
                            format_func=lambda sid: SLOT_CATALOG[sid].label)
        if st.button("Create subscription"):
            run(lambda: subs.create(name, email, studios[studio], [(d, slot) for d in days],
                                    subscription_type=sub_type),
                "Subscription created")

    for sub in subs.list():
        with st.expander(f"{sub.customer_name} - {sub.studio_name} ({sub.status})"):
            st.write(f"€{sub.monthly_price:,.0f}/month · next billing {sub.next_billing}")
            st.write(", ".join(f"{s.day} {SLOT_CATALOG[s.time_slot].label}" for s in sub.schedule))
            reason = st.text_input("Reason", key=f"reason_{sub.id}")
            c1, c2, c3 = st.columns(3)
            if sub.status == SUB_ACTIVE and c1.button("Pause", key=f"pause_{sub.id}"):
                run(lambda: subs.pause(sub.id, reason, actor="ui"), "Paused")
            if sub.status == SUB_PAUSED and c1.button("Resume", key=f"resume_{sub.id}"):
                run(lambda: subs.resume(sub.id, actor="ui"), "Resumed")
            if sub.status != "cancelled" and c2.button("Cancel", key=f"cancel_{sub.id}"):
                run(lambda: subs.cancel(sub.id, reason, actor="ui"), "Cancelled")
            if c3.button("Add note", key=f"note_{sub.id}"):
                run(lambda: subs.add_note(sub.id, reason, actor="ui"), "Note added")
            st.dataframe(pd.DataFrame([
                {"date": h.date, "action": h.action, "actor": h.actor, "details": h.details}
                for h in sub.history
            ]), use_container_width=True)


def render_lockers_tab(lockers):
    st.header("Lockers")
    col1, col2 = st.columns(2)
    col1.metric("Occupancy", f"{lockers.occupancy_rate():.0f}%")
    col2.metric("Monthly Revenue", f"€{lockers.monthly_revenue():,.0f}")

    available = lockers.available_numbers()
    with st.expander("New rental"):
        if not available:
            st.warning("All lockers are occupied.")
        else:
            number = st.selectbox("Locker", available)
            name = st.text_input("Customer name", key="locker_name")
            email = st.text_input("Customer email", key="locker_email")
            months = st.number_input("Duration (months)", 1, 24, 3)
            if st.button("Rent locker"):
                run(lambda: lockers.rent(number, name, email, duration_months=int(months)), "Locker rented")

    for rental in lockers.rentals():
        status = lockers.status_of(rental)
        with st.expander(f"Locker {rental.locker_number} - {rental.customer_name} ({status})"):
            st.write(f"{rental.start_date} → {rental.end_date} · payment {rental.payment_status}")
            c1, c2, c3 = st.columns(3)
            if c1.button("Extend 3 months", key=f"extend_{rental.id}"):
                run(lambda: lockers.extend(rental.id, 3), "Extended")
            if c2.button("Mark paid", key=f"paid_{rental.id}"):
                run(lambda: lockers.mark_paid(rental.id), "Payment recorded")
            if c3.button("Terminate", key=f"terminate_{rental.id}"):
                run(lambda: lockers.terminate(rental.id), "Rental terminated")

    waiting = lockers.waiting_list()
    if waiting:
        st.subheader("Waiting list")
        st.dataframe(pd.DataFrame([w.__dict__ for w in waiting]), use_container_width=True)


def render_bookings_tab(catalog, bookings):
    st.header("Bookings")
    with st.expander("New booking"):
        studios = studio_options(catalog)
        name = st.text_input("Customer name", key="bk_name")
        email = st.text_input("Customer email", key="bk_email")
        studio = st.selectbox("Studio", list(studios), key="bk_studio")
        day = st.date_input("Date")
        slot = st.selectbox("Time slot", list(SLOT_CATALOG), key="bk_slot",
                            format_func=lambda sid: SLOT_CATALOG[sid].label)
        booking_type = st.radio("Type", ["daily", "hourly"], horizontal=True)
        slot_hours = float(SLOT_CATALOG[slot].hours)
        duration = st.number_input("Hours", 1.0, slot_hours, slot_hours, 1.0)
        if st.button("Create booking"):
            run(lambda: bookings.create(name, email, studios[studio], day, slot, booking_type, duration),
                "Booking created")

    st.subheader("Availability (next 7 days)")
    slots = bookings.available_slots(7)
    grid = pd.DataFrame([s.__dict__ for s in slots]).pivot_table(
        index=["date", "studio_id"], columns="time_slot", values="available", aggfunc="first"
    )
    st.dataframe(grid, use_container_width=True)

    for b in bookings.list():
        with st.expander(f"{b.date} {b.studio_name} {b.time_slot} - {b.customer_name} ({b.status})"):
            st.write(f"{b.duration:g}h · €{b.price:,.0f}")
            c1, c2, c3 = st.columns(3)
            if b.status == "pending" and c1.button("Confirm", key=f"confirm_{b.id}"):
                run(lambda: bookings.confirm(b.id), "Confirmed")
            if b.status == "confirmed" and c2.button("Complete", key=f"complete_{b.id}"):
                run(lambda: bookings.complete(b.id), "Completed")
            if b.status == "pending" and c3.button("Cancel", key=f"bk_cancel_{b.id}"):
                run(lambda: bookings.cancel(b.id), "Cancelled")


def render_configuration_tab(catalog):
    st.header("Configuration")
    for studio in catalog.studios():
        with st.expander(f"{studio.name} ({studio.id})"):
            hourly = st.number_input("Hourly rate", 0.0, 500.0, float(studio.hourly_rate), key=f"hr_{studio.id}")
            day = st.number_input("Day-part rate", 0.0, 2000.0, float(studio.day_rate), key=f"dr_{studio.id}")
            monthly = st.number_input("Monthly rate", 0.0, 5000.0, float(studio.monthly_rate), key=f"mr_{studio.id}")
            c1, c2 = st.columns(2)
            if c1.button("Update", key=f"upd_{studio.id}"):
                changes = {}
                if day != studio.day_rate:
                    changes["day_rate"] = day
                if monthly != studio.monthly_rate:
                    changes["monthly_rate"] = monthly
                if hourly != studio.hourly_rate:
                    changes["hourly_rate"] = hourly
                if changes:
                    run(lambda: catalog.update_studio(studio.id, **changes), "Studio updated")
            if c2.button("Remove", key=f"rm_{studio.id}"):
                run(lambda: catalog.remove_studio(studio.id), "Studio removed")

    with st.expander("Add studio"):
        name = st.text_input("Name", key="new_studio_name")
        hourly = st.number_input("Hourly rate", 0.0, 500.0, 10.0, key="new_studio_rate")
        size = st.number_input("Size (m²)", 0.0, 500.0, 20.0, key="new_studio_size")
        if st.button("Add studio"):
            run(lambda: catalog.add_studio(name, hourly, size=size), "Studio added")

    if st.button("💾 Save configuration"):
        run(lambda: save_config(catalog.cfg), "Configuration saved")


init_state()
catalog = st.session_state.catalog
subs = st.session_state.subscriptions
lockers = st.session_state.lockers
bookings = st.session_state.bookings

st.title("🎸 Studio Rental Manager")
tabs = st.tabs(["📊 Dashboard", "🔁 Subscriptions", "🔒 Lockers", "📅 Bookings", "📈 Reports", "⚙️ Configuration"])
with tabs[0]:
    render_dashboard_tab(catalog.cfg, subs, lockers)
with tabs[1]:
    render_subscriptions_tab(catalog, subs)
with tabs[2]:
    render_lockers_tab(lockers)
with tabs[3]:
    render_bookings_tab(catalog, bookings)
with tabs[4]:
    render_reports_tab(catalog.cfg, subs, bookings, lockers)
with tabs[5]:
    render_configuration_tab(catalog)
