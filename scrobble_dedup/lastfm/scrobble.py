from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

LASTFM_QUERY_DAY_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True, slots=True)
class Scrobble:
    """A single Last.fm scrobble entry.

    ``timestamp_raw`` is the exact identifier the site uses for the row and
    is what deletion matches on, so it is kept verbatim.
    """

    artist: str
    track: str
    timestamp: datetime
    timestamp_raw: str
    url: str = ""
    track_duration: timedelta | None = None

    def with_duration(self, duration: timedelta) -> Scrobble:
        return replace(self, track_duration=duration)

    def describe(self) -> str:
        return f"{self.artist} - {self.track} @ {self.timestamp.isoformat()}"


@dataclass(frozen=True, slots=True)
class DateRange:
    """Optional from/to day filter applied to the library pages."""

    date_from: date | None = None
    date_to: date | None = None

    def query_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.date_from is not None:
            params["from"] = self.date_from.strftime(LASTFM_QUERY_DAY_FORMAT)
        if self.date_to is not None:
            params["to"] = self.date_to.strftime(LASTFM_QUERY_DAY_FORMAT)
        return params
