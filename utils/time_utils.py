from __future__ import annotations
import datetime as dt


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
