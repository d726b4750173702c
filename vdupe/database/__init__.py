"""Embedded SQLite store for the video duplicate finder."""

from .manager import VideoStore, translate_sqlite_error
from .init import init_db_if_needed

__all__ = ['VideoStore', 'translate_sqlite_error', 'init_db_if_needed']
