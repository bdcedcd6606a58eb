"""The only place the application reads the wall clock.

Engine functions take timestamps as arguments; CLI commands call these.
"""

from datetime import date, datetime

__all__ = ["now", "today"]


def now() -> datetime:
    return datetime.now().replace(microsecond=0)


def today() -> date:
    return now().date()
