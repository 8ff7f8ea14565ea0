"""
Human-readable renderings of sizes, rates and durations for the console.
"""

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(num_bytes: float) -> str:
    """Renders a byte count with a binary unit, e.g. ``'3.4 MB'``."""
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    for unit in SIZE_UNITS[:-1]:
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} {SIZE_UNITS[-1]}"


def format_speed(bytes_per_second: float) -> str:
    return f"{format_size(bytes_per_second)}/s"


def format_duration(seconds: float) -> str:
    """
    Renders elapsed time compactly: ``'850ms'`` below one second, otherwise
    ``'1h 02m 05s'`` style with leading units dropped when zero.
    """
    if seconds < 1:
        return f"{max(seconds, 0) * 1000:.0f}ms"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"
