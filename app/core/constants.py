"""
Service-wide constants
"""

SERVICE_NAME = "attendance-engine"

# Notification types written by the engine
NOTIFICATION_ATTENDANCE_LATE = "ATTENDANCE_LATE"
NOTIFICATION_REGULARIZATION_APPROVED = "REGULARIZATION_APPROVED"
NOTIFICATION_REGULARIZATION_REJECTED = "REGULARIZATION_REJECTED"

# Work location defaults applied on check-in
WORK_LOCATION_OFFICE = "OFFICE"
WORK_LOCATION_HOME = "HOME"

# Weekdays used when no shift defines working days (ISO: Monday=1 ... Sunday=7)
DEFAULT_WORKING_DAYS = (1, 2, 3, 4, 5)

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
