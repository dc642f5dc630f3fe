"""Dashboard tab: headline figures and occupancy scenarios."""

import streamlit as st
from rental_engine.calculator import compute, scenario, scenario_table
from utils.visualizations import create_revenue_breakdown_chart, create_scenario_sensitivity_chart


def render_dashboard_tab(cfg, subscriptions, lockers):
    """Render the dashboard tab."""
    summary = compute(cfg)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Monthly Costs", f"€{summary['total_monthly_costs']:,.0f}")
    col2.metric("Max Monthly Revenue", f"€{summary['max_monthly_revenue']:,.0f}")
    be = summary['break_even_occupancy']
    col3.metric("Break-even Occupancy", f"{be:.1f}%" if be is not None else "n/a")
    col4.metric("Active Subscriptions", subscriptions.active_count(),
                help=f"Capacity {summary['subscription_capacity']}")

    st.subheader("Current Month")
    c1, c2, c3 = st.columns(3)
    c1.metric("Recurring Revenue", f"€{subscriptions.monthly_recurring_revenue():,.0f}")
    c2.metric("Locker Revenue", f"€{lockers.monthly_revenue():,.0f}")
    c3.metric("Locker Occupancy", f"{lockers.occupancy_rate():.0f}%")

    st.subheader("Scenario")
    left, right = st.columns([1, 3])
    with left:
        occupancy = st.slider("Subscription occupancy (%)", 0, 100, 75, step=5)
        locker_occupancy = st.slider("Locker occupancy (%)", 0, 100, 75, step=5)
        res = scenario(cfg, occupancy, locker_occupancy)
        st.metric("Revenue", f"€{res['total_revenue']:,.0f}")
        st.metric("Profit", f"€{res['profit']:,.0f}")
        st.metric("Per Partner", f"€{res['profit_per_partner']:,.0f}")
    with right:
        st.plotly_chart(create_revenue_breakdown_chart(res), use_container_width=True)
        table = scenario_table(cfg, locker_occupancy=locker_occupancy)
        st.plotly_chart(
            create_scenario_sensitivity_chart(table, summary['total_monthly_costs']),
            use_container_width=True
        )
