from fncli import cli

from . import config
from .core.models import RecurrencePattern
from .lib import clock
from .lib.dates import parse_when
from .lib.errors import echo
from .lib.format import format_due
from .lib.parsing import parse_kind, parse_unit, parse_weekdays
from .recurrence import preview_next_occurrences


@cli("cadence")
def preview(
    kind: str,
    unit: str,
    every: int,
    anchor: str | None = None,
    exclude: str | None = None,
    day: int | None = None,
    count: int | None = None,
) -> None:
    """Preview upcoming due dates for a recurrence"""
    now = clock.now()
    pattern = RecurrencePattern(
        group_id="preview",
        kind=parse_kind(kind),
        interval_unit=parse_unit(unit),
        interval_value=every,
        anchor_date=parse_when(anchor, now) if anchor else None,
        excluded_weekdays=parse_weekdays(exclude) if exclude else frozenset(),
        day_of_month=day,
    )
    dates = preview_next_occurrences(pattern, count or config.get_preview_count(), now)
    if not dates:
        echo("no upcoming occurrences")
        return
    for d in dates:
        echo(f"  {format_due(d, colorize=False)}")
