"""Utility functions for the video duplicate finder."""

from .time import utc_now_str, format_duration

__all__ = ['utc_now_str', 'format_duration']
