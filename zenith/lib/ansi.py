import os
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True)
class Theme:
    red: str = "\033[38;5;203m"
    green: str = "\033[38;5;114m"
    yellow: str = "\033[38;5;221m"
    blue: str = "\033[38;5;111m"
    gray: str = "\033[38;5;245m"
    orange: str = "\033[38;5;208m"
    coral: str = "\033[38;5;209m"
    muted: str = "\033[90m"
    bold: str = "\033[1m"
    dim: str = "\033[2m"
    reset: str = "\033[0m"


DEFAULT = Theme()
PLAIN = Theme(**{name: "" for name in Theme.__dataclass_fields__})


def _initial_theme() -> Theme:
    if os.environ.get("NO_COLOR") or not sys.stdout.isatty():
        return PLAIN
    return DEFAULT


_active: Theme = _initial_theme()


def use(theme: Theme) -> None:
    global _active
    _active = theme


_COLORS = {"red", "green", "yellow", "blue", "gray", "orange", "coral", "muted"}


def __getattr__(name: str) -> Callable[[str], str]:
    if name in _COLORS:

        def _wrap(text: str) -> str:
            return f"{getattr(_active, name)}{text}{_active.reset}"

        _wrap.__name__ = name
        return _wrap
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def bold(text: str) -> str:
    return f"{_active.bold}{text}{_active.reset}"


def dim(text: str) -> str:
    return f"{_active.dim}{text}{_active.reset}"


def strip(text: str) -> str:
    return _ANSI_RE.sub("", text)
