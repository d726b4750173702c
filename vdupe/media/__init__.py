"""External media tool adapters."""

from .ffmpeg import FFmpegAdapter, format_timestamp, parse_frame_rate, parse_probe_output

__all__ = ['FFmpegAdapter', 'format_timestamp', 'parse_frame_rate', 'parse_probe_output']
