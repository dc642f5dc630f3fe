"""Visualization utilities for the rental model."""

import plotly.graph_objects as go
import pandas as pd


def create_revenue_breakdown_chart(scenario_result):
    """Stacked bar of the three revenue streams of one scenario."""
    parts = {
        'Subscriptions': scenario_result['subscription_revenue'],
        'Casual bookings': scenario_result['casual_revenue'],
        'Lockers': scenario_result['locker_revenue'],
    }
    fig = go.Figure()
    for (name, value), color in zip(parts.items(), ['green', 'orange', 'purple']):
        fig.add_trace(go.Bar(x=['Revenue'], y=[value], name=name, marker_color=color))
    fig.update_layout(
        barmode='stack',
        title='Monthly Revenue Breakdown',
        yaxis_title='Amount (€)',
        height=400
    )
    return fig


def create_scenario_sensitivity_chart(table: pd.DataFrame, monthly_costs: float):
    """Revenue and profit across subscription occupancy levels."""
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=table['occupancy_rate'],
        y=table['total_revenue'],
        mode='lines+markers',
        name='Total Revenue',
        line=dict(color='green', width=2)
    ))
    fig.add_trace(go.Scatter(
        x=table['occupancy_rate'],
        y=table['profit'],
        mode='lines+markers',
        name='Profit',
        line=dict(color='blue', width=2)
    ))
    fig.add_hline(y=monthly_costs, line_dash="dash", line_color="red", annotation_text="Monthly Costs")
    fig.add_hline(y=0, line_dash="dash", line_color="gray")
    fig.update_layout(
        title='Revenue vs Subscription Occupancy',
        xaxis_title='Subscription Occupancy (%)',
        yaxis_title='Amount (€)',
        height=400
    )
    return fig


def create_monthly_aggregates_chart(frame: pd.DataFrame):
    """Revenue, expenses and profit per reported month."""
    fig = go.Figure()
    fig.add_trace(go.Bar(x=frame['month'], y=frame['revenue'], name='Revenue', marker_color='green'))
    fig.add_trace(go.Bar(x=frame['month'], y=frame['expenses'], name='Expenses', marker_color='red'))
    fig.add_trace(go.Scatter(
        x=frame['month'],
        y=frame['profit'],
        mode='lines+markers',
        name='Profit',
        line=dict(color='blue', width=2)
    ))
    fig.update_layout(
        barmode='group',
        title='Monthly Results',
        xaxis_title='Month',
        yaxis_title='Amount (€)',
        height=400
    )
    return fig
