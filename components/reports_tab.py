"""Reports tab: monthly aggregates and exports."""

import streamlit as st
from rental_engine.config_store import export_config_json
from rental_engine.dates import utc_today
from rental_engine.reports import aggregates_frame, export_csv, export_excel, monthly_snapshot
from utils.visualizations import create_monthly_aggregates_chart


def render_reports_tab(cfg, subscriptions, bookings, lockers):
    """Render the reports tab."""
    today = utc_today()
    year = st.number_input("Year", 2020, 2100, today.year)
    months = st.multiselect("Months", list(range(1, 13)), default=[today.month])

    rows = [monthly_snapshot(cfg, subscriptions, bookings, lockers, int(year), m) for m in sorted(months)]
    if not rows:
        st.info("Select at least one month.")
        return

    frame = aggregates_frame(rows)
    st.dataframe(frame, use_container_width=True)
    st.plotly_chart(create_monthly_aggregates_chart(frame), use_container_width=True)

    stamp = today.isoformat()
    col1, col2, col3 = st.columns(3)
    col1.download_button(
        "Download CSV",
        data=export_csv(rows).encode("utf-8"),
        file_name=f"rental_report_{stamp}.csv",
        mime="text/csv"
    )
    col2.download_button(
        "Download Excel",
        data=export_excel(rows),
        file_name=f"rental_report_{stamp}.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    col3.download_button(
        "Export Configuration",
        data=export_config_json(cfg).encode("utf-8"),
        file_name=f"rental_config_{stamp}.json",
        mime="application/json"
    )
