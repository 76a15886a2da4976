## common/utils.py`

import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo
from typing import Optional, Union

logger = logging.getLogger("voice-booking")


def _dt_utc(s: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """
    Parse s into a timezone-aware UTC datetime.
    Accepts:
      - datetime (naive or tz-aware)
      - ISO strings (with or without 'Z')
      - 'YYYY-MM-DD HH:MM' / 'YYYY-MM-DDTHH:MM' / 'YYYY-MM-DD HH:MM:SS'
    """
    if s is None or s == "":
        return None

    if isinstance(s, datetime):
        dt = s
    else:
        s2 = str(s).strip()
        if s2.endswith("Z"):
            s2 = s2[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s2)
        except ValueError:
            for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S"):
                try:
                    dt = datetime.strptime(s2, fmt)
                    break
                except ValueError:
                    continue
            else:
                raise ValueError(f"Unparseable datetime: {s!r}")

    # If naive, assume UTC; otherwise convert to UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _time_of(daytime: Union[str, time]) -> time:
    if isinstance(daytime, time):
        return daytime
    return datetime.strptime(daytime, "%H:%M").time()


def _zone(tz: Optional[str]):
    try:
        return ZoneInfo(tz) if tz else timezone.utc
    except Exception:
        logger.warning("Unknown timezone %r; using UTC", tz)
        return timezone.utc


def _local_to_utc(d: date, t: time, tz: Optional[str] = "UTC") -> datetime:
    """Interpret (d, t) as wall-clock time in `tz` and return it in UTC."""
    return datetime.combine(d, t, tzinfo=_zone(tz)).astimezone(timezone.utc)


def _utc_to_local(dt: datetime, tz: Optional[str] = "UTC") -> datetime:
    return _dt_utc(dt).astimezone(_zone(tz))


def _add_minutes(t: time, minutes: int) -> time:
    return (datetime.combine(date.min, t) + timedelta(minutes=minutes)).time()


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


__all__ = [
    "_dt_utc",
    "_time_of",
    "_zone",
    "_local_to_utc",
    "_utc_to_local",
    "_add_minutes",
    "_iso_now",
    "ZoneInfo",
]
