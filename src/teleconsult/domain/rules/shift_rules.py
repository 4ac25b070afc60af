"""
Doctor shift hour-window rules.
"""


def hour_in_window(hour: int, start_hour: int, end_hour: int) -> bool:
    """``[start, end)`` containment with overnight wraparound when start > end."""
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def validate_shift_hours(start_hour: int, end_hour: int) -> None:
    if not 0 <= start_hour <= 23:
        raise ValueError("start_hour must be between 0 and 23")
    if not 1 <= end_hour <= 24:
        raise ValueError("end_hour must be between 1 and 24")
    if start_hour == end_hour:
        raise ValueError("start_hour and end_hour must differ")
