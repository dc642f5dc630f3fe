"""Default parameters for the studio rental business model."""

DEFAULT_STUDIOS = [
    {'id': 'studio-a', 'name': 'Studio A', 'size': 20, 'hourly_rate': 10, 'day_rate': 40, 'monthly_rate': 160, 'max_capacity': 6},
    {'id': 'studio-b', 'name': 'Studio B', 'size': 20, 'hourly_rate': 10, 'day_rate': 40, 'monthly_rate': 160, 'max_capacity': 6},
    {'id': 'studio-c', 'name': 'Studio C', 'size': 15, 'hourly_rate': 8, 'day_rate': 32, 'monthly_rate': 128, 'max_capacity': 4},
]

DEFAULT_LOCKERS = {
    'monthly_rate': 40,
    'total_count': 8,
    # cm
    'dimensions': {'width': 100, 'height': 200, 'depth': 260},
}

# Monthly operating expenses (EUR)
DEFAULT_OPERATIONAL_COSTS = {
    'rent': 550,
    'utilities': 200,
    'insurance': 120,
    'maintenance': 100,
    'administration': 20,
    'marketing': 20,
    'booking_system': 50,
    'security': 30,
    'access': 40,
    'cleaning': 80,
    'copyright_fees': 50,
    'waste': 20,
    'reserves': 70,
    'miscellaneous': 50,
}

DEFAULT_DISCOUNTS = {
    'student': 10,  # %
    'bulk': 15,     # % (yearly subscriptions)
}

DEFAULT_BREAK_EVEN = {
    'target_monthly_revenue': 1400,
    'minimum_occupancy_rate': 58,
}

DEFAULT_PARTNERS = {
    'count': 2,
    'profit_split_percentage': 50,
}

# Fixed capacity assumptions used by the revenue model
SUBSCRIBERS_PER_STUDIO = 4
DAY_PARTS_PER_SUBSCRIBER = 4  # one weekly day-part
CASUAL_DAY_PARTS_PER_STUDIO = 8
DAY_PARTS_PER_MONTH = 20
CASUAL_BOOKING_SHARE = 0.3
HOURS_PER_DAY_PART = 3

DAY_RATE_MULTIPLIER = 4
MONTHLY_RATE_MULTIPLIER = 16

EXPIRING_SOON_DAYS = 30

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

# start/end in hours; 'listed' slots are offered in availability listings
TIME_SLOTS = [
    {'id': 'morning', 'label': 'Morning (10:00-13:00)', 'start': 10, 'end': 13, 'hours': 3, 'listed': True},
    {'id': 'afternoon', 'label': 'Afternoon (14:00-17:00)', 'start': 14, 'end': 17, 'hours': 3, 'listed': True},
    {'id': 'evening', 'label': 'Evening (18:00-21:00)', 'start': 18, 'end': 21, 'hours': 3, 'listed': True},
    {'id': 'late', 'label': 'Late evening (19:00-22:00)', 'start': 19, 'end': 22, 'hours': 3, 'listed': True},
    {'id': 'double', 'label': 'Double day-part (6 hours)', 'start': 10, 'end': 17, 'hours': 6, 'listed': False},
]
