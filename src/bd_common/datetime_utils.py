"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def is_older_than(moment: datetime | None, max_age_seconds: int) -> bool:
    """True when ``moment`` is missing or more than ``max_age_seconds`` in the past."""
    if moment is None:
        return True
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (utc_now() - moment).total_seconds() > max_age_seconds
