"""Line-level log highlighting.

Classifies a build log line by keyword and returns the Rich style to print
it with.  Errors win over warnings, warnings over successes.
"""

from __future__ import annotations

from enum import Enum


class LineClass(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"
    PLAIN = "plain"


_ERROR_WORDS = ("error", "failed", "failure", "fatal", "exception", "panic")
_ERROR_MARKERS = ("[ERROR]", "[error]")
_WARNING_WORDS = ("warning", "warn")
_WARNING_MARKERS = ("[WARN]", "[warn]")
_SUCCESS_WORDS = ("success", "passed", "completed")
_SUCCESS_MARKERS = ("[OK]", "BUILD SUCCESSFUL")

_CLASS_STYLES: dict[LineClass, str] = {
    LineClass.ERROR: "red",
    LineClass.WARNING: "yellow",
    LineClass.SUCCESS: "green",
    LineClass.PLAIN: "",
}


def classify_line(line: str) -> LineClass:
    lowered = line.lower()
    if (
        any(word in lowered for word in _ERROR_WORDS)
        or line.startswith("E ")
        or any(marker in line for marker in _ERROR_MARKERS)
    ):
        return LineClass.ERROR
    if (
        any(word in lowered for word in _WARNING_WORDS)
        or line.startswith("W ")
        or any(marker in line for marker in _WARNING_MARKERS)
    ):
        return LineClass.WARNING
    if any(word in lowered for word in _SUCCESS_WORDS) or any(
        marker in line for marker in _SUCCESS_MARKERS
    ):
        return LineClass.SUCCESS
    return LineClass.PLAIN


def highlight_line(line: str) -> str:
    """Return the Rich style for *line* (empty string for plain text)."""
    return _CLASS_STYLES[classify_line(line)]
