from datetime import datetime

from aria.domain.models.assistant_state import TimeOfDay


def time_of_day_for(moment: datetime) -> TimeOfDay:
    """Bucket the local hour of a timestamp"""

    hour = moment.hour
    if hour < 6:
        return TimeOfDay.LATE_NIGHT
    if hour < 12:
        return TimeOfDay.MORNING
    if hour < 17:
        return TimeOfDay.AFTERNOON
    if hour < 21:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT
