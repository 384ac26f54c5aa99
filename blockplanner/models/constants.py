"""Constants for blockplanner.

This module centralizes all magic numbers and default values used throughout the application.
"""

# Block defaults
DEFAULT_BLOCK_DURATION_MINUTES = 60
DEFAULT_BLOCK_COLOR = "#3366FF"

# Conflict suggestions
SUGGESTION_STEP_MINUTES = 15
SUGGESTION_MAX_RESULTS = 3
SUGGESTION_HORIZON_HOURS = 8

# Notification scheduling
DEFAULT_UPCOMING_WARNING_MINUTES = 10
DEFAULT_LOOKAHEAD_MINUTES = 60
DEFAULT_DUE_LIMIT = 100
DEFAULT_RETENTION_DAYS = 30

# Runners (seconds)
SCHEDULER_INTERVAL_SEC = 60
SCHEDULER_DEBOUNCE_SEC = 3
SCHEDULER_MIN_TICK_INTERVAL_SEC = 5
DELIVERY_INTERVAL_SEC = 30
PERMISSION_CHECK_INTERVAL_SEC = 60 * 60

# Notification actions
DEFAULT_SNOOZE_MINUTES = 5
NOTIFICATION_ACTION_TYPE_ID = "block-actions"

# Recurring generation
DEFAULT_RECURRING_WEEKS_IN_ADVANCE = 1
