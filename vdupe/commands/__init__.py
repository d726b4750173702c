"""CLI command implementations."""

from .scan import ScanCommand
from .duplicates import cmd_list_duplicates
from .stats import cmd_show_stats

__all__ = ['ScanCommand', 'cmd_list_duplicates', 'cmd_show_stats']
