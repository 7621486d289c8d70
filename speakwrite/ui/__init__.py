"""Terminal user interface."""

from .recorder_screen import RecorderScreen, format_time

__all__ = ["RecorderScreen", "format_time"]
