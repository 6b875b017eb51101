from datetime import datetime, timezone


def now() -> datetime:
    """Current UTC time without tzinfo.
    Every timestamp column in the database is naive UTC, use this everywhere.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_tzinfo() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return now_tzinfo().isoformat().replace("+00:00", "Z")


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """Normalise a datetime (aware or naive) to naive UTC.
    - None -> None
    - aware -> converted to UTC, tzinfo dropped
    - naive -> assumed to already be UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt

