"""Revenue, break-even and profit-split calculations.

All functions are pure: they read a BusinessConfig snapshot and return numbers
or plain dicts. Capacity assumptions (4 subscribers and 8 casual day-parts per
studio per month, 20 day-parts per studio per month, 30% casual fill of what
subscribers leave free) are fixed model constants.
"""
import logging
import math
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from config.default_params import (
    SUBSCRIBERS_PER_STUDIO, DAY_PARTS_PER_SUBSCRIBER, CASUAL_DAY_PARTS_PER_STUDIO, DAY_PARTS_PER_MONTH,
    CASUAL_BOOKING_SHARE,
)
from .models import BusinessConfig, OperationalCosts
from .catalog import round_half_up

logger = logging.getLogger(__name__)


def total_monthly_costs(costs: OperationalCosts) -> float:
    return sum(costs.as_dict().values())


def subscription_capacity(cfg: BusinessConfig) -> int:
    """Maximum number of subscribers across all studios"""
    return len(cfg.studios) * SUBSCRIBERS_PER_STUDIO


def max_subscription_revenue(cfg: BusinessConfig) -> float:
    return sum(s.monthly_rate * SUBSCRIBERS_PER_STUDIO for s in cfg.studios)


def max_locker_revenue(cfg: BusinessConfig) -> float:
    return cfg.lockers.total_count * cfg.lockers.monthly_rate


def max_monthly_revenue(cfg: BusinessConfig) -> float:
    casual = sum(s.day_rate * CASUAL_DAY_PARTS_PER_STUDIO for s in cfg.studios)
    return max_subscription_revenue(cfg) + casual + max_locker_revenue(cfg)


def break_even_occupancy(cfg: BusinessConfig) -> Optional[float]:
    """Subscription occupancy (%) whose revenue covers the monthly costs.

    Returns None when there is no subscription capacity to divide by.
    """
    capacity_revenue = max_subscription_revenue(cfg)
    if capacity_revenue <= 0:
        return None
    return total_monthly_costs(cfg.costs) / capacity_revenue * 100.0


def monthly_profit(actual_revenue: float, cfg: BusinessConfig) -> float:
    return actual_revenue - total_monthly_costs(cfg.costs)


def profit_per_partner(profit: float, cfg: BusinessConfig) -> float:
    p = cfg.partners
    return profit * p.profit_split_percentage / 100.0 / p.count


def casual_day_parts(subscribers: int) -> int:
    """Day-parts booked casually in a studio given its subscriber count"""
    free = max(0, DAY_PARTS_PER_MONTH - min(SUBSCRIBERS_PER_STUDIO, subscribers) * DAY_PARTS_PER_SUBSCRIBER)
    return int(round_half_up(free * CASUAL_BOOKING_SHARE))


def scenario(cfg: BusinessConfig, occupancy_rate: float, locker_occupancy: float) -> dict:
    """Project monthly revenue and profit for given occupancy percentages.

    Subscribers are filled greedily, up to 4 per studio in catalog order.
    """
    achievable = int(round_half_up(subscription_capacity(cfg) * occupancy_rate / 100.0))
    logger.debug("scenario: occupancy=%s%% lockers=%s%% -> %d subscribers",
                 occupancy_rate, locker_occupancy, achievable)

    remaining = achievable
    subscription_revenue = 0.0
    casual_revenue = 0.0
    per_studio = []
    for studio in cfg.studios:
        subs = min(SUBSCRIBERS_PER_STUDIO, max(0, remaining))
        remaining -= subs
        casual = casual_day_parts(subs)
        subscription_revenue += subs * studio.monthly_rate
        casual_revenue += casual * studio.day_rate
        per_studio.append({"studio_id": studio.id, "subscribers": subs, "casual_day_parts": casual})

    locker_revenue = math.floor(cfg.lockers.total_count * locker_occupancy / 100.0) * cfg.lockers.monthly_rate

    total_revenue = subscription_revenue + casual_revenue + locker_revenue
    profit = monthly_profit(total_revenue, cfg)
    return {
        "total_revenue": total_revenue,
        "subscription_revenue": subscription_revenue,
        "casual_revenue": casual_revenue,
        "locker_revenue": locker_revenue,
        "profit": profit,
        "profit_per_partner": profit_per_partner(profit, cfg),
        "occupancy_rate": occupancy_rate,
        "locker_occupancy": locker_occupancy,
        "subscribers": achievable,
        "per_studio": per_studio,
    }


def scenario_table(cfg: BusinessConfig, occupancy_levels: Iterable[float] = None,
                   locker_occupancy: float = 75.0) -> pd.DataFrame:
    """Sensitivity sweep of scenario() over subscription occupancy"""
    if occupancy_levels is None:
        occupancy_levels = np.linspace(0, 100, 11)
    rows = []
    for level in occupancy_levels:
        res = scenario(cfg, float(level), locker_occupancy)
        rows.append({k: v for k, v in res.items() if k != "per_studio"})
    return pd.DataFrame(rows)


def compute(cfg: BusinessConfig) -> dict:
    """Headline figures for the configuration"""
    costs = total_monthly_costs(cfg.costs)
    max_rev = max_monthly_revenue(cfg)
    target = cfg.break_even.target_monthly_revenue
    return {
        "total_monthly_costs": costs,
        "max_monthly_revenue": max_rev,
        "max_subscription_revenue": max_subscription_revenue(cfg),
        "max_locker_revenue": max_locker_revenue(cfg),
        "break_even_occupancy": break_even_occupancy(cfg),
        "subscription_capacity": subscription_capacity(cfg),
        "target_monthly_revenue": target,
        "headroom_vs_target": max_rev - target,
        "max_profit": monthly_profit(max_rev, cfg),
        "max_profit_per_partner": profit_per_partner(monthly_profit(max_rev, cfg), cfg),
    }
