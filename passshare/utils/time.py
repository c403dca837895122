def format_time_remaining(seconds: int) -> str:
    """Human readable countdown, e.g. ``23h 59m`` or ``45s``."""
    seconds = int(seconds)
    if seconds <= 0:
        return "Expired"

    hours, rest = divmod(seconds, 3600)
    minutes, remaining_seconds = divmod(rest, 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {remaining_seconds}s"
    return f"{remaining_seconds}s"
