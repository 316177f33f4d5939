# backend/lib/water_core/schedule.py
from datetime import date
from typing import Dict

# Meter readings are taken between these days of every month, inclusive
READING_FIRST_DAY = 20
READING_LAST_DAY = 25


def reading_window_notice(today: date) -> Dict[str, str]:
    """
    Banner for the admin dashboard about the monthly reading window.
    Returns {'severity': 'warning'|'info', 'message': ...}.
    """
    if READING_FIRST_DAY <= today.day <= READING_LAST_DAY:
        return {
            "severity": "warning",
            "message": f"Meter reading days are in progress (day {READING_FIRST_DAY} to "
                       f"{READING_LAST_DAY} of each month).",
        }
    if today.day < READING_FIRST_DAY:
        days_left = READING_FIRST_DAY - today.day
        return {
            "severity": "info",
            "message": f"{days_left} day{'s' if days_left != 1 else ''} left until meter "
                       f"readings start (day {READING_FIRST_DAY} of this month).",
        }
    return {
        "severity": "info",
        "message": f"This month's meter readings are over. Next readings start on day "
                   f"{READING_FIRST_DAY} of next month.",
    }
