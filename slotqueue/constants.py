# Appointment statuses
SCHEDULED = "scheduled"
CHECKED_IN = "checked-in"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no-show"

APPOINTMENT_STATUSES = [SCHEDULED, CHECKED_IN, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW]

# Statuses that hold a timestamp and count against slot capacity
ACTIVE_APPOINTMENT_STATUSES = [SCHEDULED, CHECKED_IN, IN_PROGRESS]

# Request statuses
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

REQUEST_STATUSES = [PENDING, APPROVED, REJECTED]

# Display only; the queue is strictly first-come-first-served
PRIORITIES = ["normal", "high", "urgent"]
