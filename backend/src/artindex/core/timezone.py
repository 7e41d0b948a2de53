"""UTC timezone enforcement.

Sets TZ=UTC for the process and provides the timestamp helper used by models,
so every stored timestamp is naive UTC regardless of the host's locale.
"""

import os
from datetime import UTC, datetime

os.environ["TZ"] = "UTC"


def utc_now() -> datetime:
    """Current time as naive UTC (matches TIMESTAMP WITHOUT TIME ZONE columns)."""
    return datetime.now(UTC).replace(tzinfo=None)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp from an upstream payload into naive UTC.

    Returns None for missing or unparseable values.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed
