#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Time utility functions for the video duplicate finder.
"""

from datetime import datetime, timezone


def utc_now_str() -> str:
    """Return current UTC time in ISO-8601 format with 'Z'."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_duration(seconds: float) -> str:
    """Render a video length as ``H:MM:SS``."""
    total = int(round(seconds or 0))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
