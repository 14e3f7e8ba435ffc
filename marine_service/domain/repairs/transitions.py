"""Repair status state machine"""

REPAIR_STATUSES = (
    "pending",
    "assigned",
    "confirmed",
    "in_progress",
    "waiting_parts",
    "completed",
    "cancelled",
    "rescheduled",
)

TERMINAL_STATUSES = ("completed", "cancelled")

ALLOWED_TRANSITIONS = {
    "pending": ("assigned", "confirmed", "in_progress", "cancelled", "rescheduled"),
    "assigned": ("pending", "confirmed", "in_progress", "cancelled", "rescheduled"),
    "confirmed": ("assigned", "in_progress", "cancelled", "rescheduled"),
    "in_progress": ("waiting_parts", "completed", "cancelled"),
    "waiting_parts": ("in_progress", "completed", "cancelled"),
    "rescheduled": ("pending", "assigned", "confirmed", "cancelled"),
    "completed": (),
    "cancelled": (),
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, ())
