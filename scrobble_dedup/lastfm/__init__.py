from .scrobble import DateRange, Scrobble
from .web import LastFMWebClient

__all__ = [
    "DateRange",
    "LastFMWebClient",
    "Scrobble",
]
