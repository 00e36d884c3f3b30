"""Structured run logging utilities."""

from .runlog import JsonlRunLogger, RunEvent, clamp_limit, utc_timestamp

__all__ = ["JsonlRunLogger", "RunEvent", "clamp_limit", "utc_timestamp"]
