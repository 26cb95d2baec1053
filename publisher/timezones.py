"""User time zone resolution and local-to-UTC conversion."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIME_ZONE = "America/New_York"


class TimeZoneResolver:
    """Resolve the time zone an author's local timestamps are expressed in.

    The configured zone applies to every user; a per-user lookup can replace
    this class without touching callers.
    """

    def __init__(self, time_zone_id: str = DEFAULT_TIME_ZONE) -> None:
        self.time_zone_id = time_zone_id

    async def resolve_user_time_zone_id(self) -> str:
        return self.time_zone_id


def convert_to_utc(local: datetime, zone_id: str) -> datetime:
    """Interpret naive *local* as wall time in *zone_id* and return aware UTC.

    Aware datetimes are converted directly; the zone is ignored for them.
    Unknown zone ids fall back to UTC with a warning.
    """
    if local.tzinfo is not None:
        return local.astimezone(timezone.utc)
    try:
        zone = ZoneInfo(zone_id)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, treating timestamp as UTC", zone_id)
        return local.replace(tzinfo=timezone.utc)
    return local.replace(tzinfo=zone).astimezone(timezone.utc)
