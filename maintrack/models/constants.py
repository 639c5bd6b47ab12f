"""Constants for maintrack.

This module centralizes all magic numbers and default values used throughout the application.
"""

# Status rule: tasks due further out than this are healthy
HEALTHY_HORIZON_DAYS = 7

# Demotion sweep: completed recurring tasks re-enter the status rule after this cooldown
COMPLETION_COOLDOWN_HOURS = 12

# Notification preferences (days before the due date)
DEFAULT_NOTIFICATION_PREFERENCES = (1, 0)
MAX_NOTIFICATION_PREFERENCES = 10
MAX_NOTIFICATION_OFFSET_DAYS = 365

# Background job intervals
DEFAULT_RECONCILE_INTERVAL_SECONDS = 60 * 60  # hourly
DEFAULT_NOTIFY_INTERVAL_SECONDS = 24 * 60 * 60  # daily

# Listing
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
