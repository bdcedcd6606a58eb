from datetime import datetime

from cadence.core.models import StreakState, TaskOccurrence

from . import ansi

__all__ = [
    "format_due",
    "format_elapsed",
    "format_occurrence",
    "format_status",
    "format_streak",
]


def format_elapsed(dt: datetime, now: datetime) -> str:
    """Format a datetime as a human-readable relative string (e.g. '5m ago', '3h ago')."""
    s = int((now - dt).total_seconds())
    if s < 60:
        return f"{s}s ago"
    m = s // 60
    if m < 60:
        return f"{m}m ago"
    h = m // 60
    if h < 24:
        return f"{h}h ago"
    d = h // 24
    if d < 7:
        return f"{d}d ago"
    return dt.strftime("%Y-%m-%d")


def format_due(due: datetime | None, colorize: bool = True) -> str:
    if due is None:
        return ""
    if due.hour or due.minute:
        text = due.strftime("%a %Y-%m-%d %H:%M")
    else:
        text = due.strftime("%a %Y-%m-%d")
    return ansi.muted(text) if colorize else text


def format_occurrence(occ: TaskOccurrence, show_id: bool = True) -> str:
    """Format an occurrence for display. Returns: content [due] [#tags] [id]"""
    parts = [occ.title.lower()]
    if occ.due_date:
        parts.append(format_due(occ.due_date))
    if occ.tags:
        parts.append(" ".join(ansi.muted(f"#{t}") for t in occ.tags))
    if show_id:
        parts.append(ansi.muted(f"[{occ.id[:8]}]"))
    return " ".join(parts)


def format_streak(state: StreakState) -> str:
    check = ansi.green("✓ today") if state.is_completed_today else ansi.muted("□ today")
    since = state.days_since_last_completion
    since_str = "never" if since is None else ("today" if since == 0 else f"{since}d ago")
    line = (
        f"streak {ansi.bold(str(state.current_streak))}"
        f"  best {state.longest_streak}  {check}  last {since_str}"
    )
    if state.streak_safe_until and not state.is_completed_today:
        label = "grace until" if state.is_in_grace_period else "safe until"
        line += f"  {label} {state.streak_safe_until.strftime('%a %Y-%m-%d')}"
    return line


def format_status(symbol: str, content: str, item_id: str | None = None) -> str:
    """Format status message for action confirmations."""
    if item_id:
        return f"{symbol} {content} {ansi.muted(f'[{item_id[:8]}]')}"
    return f"{symbol} {content}"
