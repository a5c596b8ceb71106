from datetime import date, datetime, time, timedelta


def future_day(days=3) -> date:
    return date.today() + timedelta(days=days)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))
