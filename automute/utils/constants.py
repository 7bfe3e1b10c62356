"""Constants and default values."""

# Days of week, 1=Sunday..7=Saturday
DAY_NAMES = {
    1: "Sun",
    2: "Mon",
    3: "Tue",
    4: "Wed",
    5: "Thu",
    6: "Fri",
    7: "Sat",
}

DAY_ALIASES = {
    "sun": 1,
    "sunday": 1,
    "mon": 2,
    "monday": 2,
    "tue": 3,
    "tuesday": 3,
    "wed": 4,
    "wednesday": 4,
    "thu": 5,
    "thursday": 5,
    "fri": 6,
    "friday": 6,
    "sat": 7,
    "saturday": 7,
}

DAY_GROUPS = {
    "everyday": [1, 2, 3, 4, 5, 6, 7],
    "daily": [1, 2, 3, 4, 5, 6, 7],
    "weekdays": [2, 3, 4, 5, 6],
    "weekends": [1, 7],
}

# Persisted keys
KEY_LOCATIONS = "locations"
KEY_DAILY_TIMERS = "daily_timers"
KEY_QUICK_TIMER_ACTIVE = "quick_timer_active"
KEY_QUICK_TIMER_END_TIME = "quick_timer_end_time"
KEY_MUTED_BY_APP = "muted_by_app"
KEY_RINGER_MODE = "ringer_mode"
KEY_INTERRUPTION_FILTER = "interruption_filter"
DAILY_TIMER_KEY_PREFIX = "daily_timer:"

# Alarm action names, hashed into alarm identifiers
ACTION_SET_SILENT = "automute.SET_SILENT"
ACTION_SET_NORMAL = "automute.SET_NORMAL"

# One-shot wake-up identifier for the quick timer
QUICK_TIMER_ALARM_ID = 0

# Location defaults
DEFAULT_RADIUS_METERS = 150.0
DEFAULT_LOCATION_MODE = "SILENT"

# Mean Earth radius (meters)
EARTH_RADIUS_METERS = 6371008.8

# Limits
# Callback data is capped at 64 bytes; "delloc:" takes 7 of them
CALLBACK_DATA_MAX_BYTES = 64
MAX_LOCATION_NAME_BYTES = CALLBACK_DATA_MAX_BYTES - len("delloc:")
MAX_QUICK_TIMER_MINUTES = 24 * 60

# Quick timer presets offered on the keyboard (minutes)
QUICK_TIMER_PRESETS = [15, 30, 60, 120]
