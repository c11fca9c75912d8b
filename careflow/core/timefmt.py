import re
from datetime import date, datetime, time

from careflow.core.errors import InvalidArgumentError

# 24h, con cero a la izquierda: 07:00, 23:59
HHMM_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"
_HHMM = re.compile(HHMM_PATTERN)


def parse_hhmm(value: str, field: str = "time") -> time:
    if not isinstance(value, str) or not _HHMM.match(value):
        raise InvalidArgumentError(f"{field} must be in HH:MM format")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def validate_interval(start_time: str, end_time: str) -> tuple[time, time]:
    start = parse_hhmm(start_time, "start_time")
    end = parse_hhmm(end_time, "end_time")
    if end <= start:
        raise InvalidArgumentError("end_time must be later than start_time")
    return start, end


def calendar_day(value: date | datetime) -> date:
    """Normaliza a día calendario (descarta la hora si viene un datetime)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def scheduled_start(day: date | datetime, start_time: str) -> datetime:
    return datetime.combine(calendar_day(day), parse_hhmm(start_time, "start_time"))
