from .musicbrainz import Candidate, MusicBrainzLookup, cache_key
from .parsing import format_duration, parse_duration, parse_track_length
from .resolver import DurationResolver, default_search_policy

__all__ = [
    "Candidate",
    "DurationResolver",
    "MusicBrainzLookup",
    "cache_key",
    "default_search_policy",
    "format_duration",
    "parse_duration",
    "parse_track_length",
]
