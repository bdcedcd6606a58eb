import os
import sys
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    green: str = "\033[38;5;114m"
    muted: str = "\033[90m"  # dim gray for secondary text
    bold: str = "\033[1m"
    reset: str = "\033[0m"


DEFAULT = Theme()
PLAIN = Theme(**{field: "" for field in Theme.__dataclass_fields__})
_active: Theme = DEFAULT if sys.stdout.isatty() and not os.environ.get("NO_COLOR") else PLAIN


def use(theme: Theme) -> None:
    global _active
    _active = theme


_COLORS = {"green", "muted"}


def __getattr__(name: str) -> Callable[[str], str]:
    if name in _COLORS:

        def _wrap(text: str) -> str:
            return f"{getattr(_active, name)}{text}{_active.reset}"

        _wrap.__name__ = name
        return _wrap
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def bold(text: str) -> str:
    return f"{_active.bold}{text}{_active.reset}"
