from datetime import datetime, timezone


def seconds_to_hhmmss(total_seconds: float) -> str:
    """
    Convert total seconds -> 'HH:MM:SS' (fractions are truncated).
    Example: 2732 -> '00:45:32'
    """
    total_seconds = max(0, int(total_seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def epoch_ms_from_dt(dt: datetime) -> int:
    """Datetime -> Unix epoch milliseconds. Naive datetimes are treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def dt_from_epoch_ms(epoch_ms: int) -> datetime:
    """Unix epoch milliseconds -> timezone-aware UTC datetime."""
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)


def now_ms() -> int:
    return epoch_ms_from_dt(datetime.now(timezone.utc))
