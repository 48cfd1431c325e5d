from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol

from ..errors import CacheError, DurationLookupError, UnresolvedDurationError
from ..retry import RetryPolicy
from .musicbrainz import Candidate, cache_key
from .parsing import format_duration, parse_duration

if TYPE_CHECKING:
    from ..cache import Cache
    from ..cache.durations import DurationsByArtist
    from ..lastfm import Scrobble
    from ..metrics import RunStats

log = logging.getLogger(__name__)


class RecordingSearch(Protocol):
    def search_recordings(self, artist: str, track: str) -> list[Candidate]: ...


class TrackPageLookup(Protocol):
    def track_duration(self, url: str) -> timedelta | None: ...


def default_search_policy(max_attempts: int = 10) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=max_attempts,
        initial_delay=0.5,
        multiplier=1.5,
        max_delay=60.0,
        retry_on=(DurationLookupError,),
    )


class DurationResolver:
    """Find a track's duration, cheapest source first.

    Priority: user override -> tracks already known to be unresolvable ->
    cache -> MusicBrainz search (retried) -> track page fallback (single try).

    ``unknown_durations`` is the run-wide mapping owned by the caller and is
    mutated in place.
    """

    def __init__(
        self,
        cache: Cache,
        user_durations: DurationsByArtist,
        unknown_durations: DurationsByArtist,
        stats: RunStats,
        search: RecordingSearch,
        fallback: TrackPageLookup | None = None,
        search_policy: RetryPolicy | None = None,
    ):
        self.cache = cache
        self.user_durations = user_durations
        self.unknown_durations = unknown_durations
        self.stats = stats
        self.search = search
        self.fallback = fallback
        self.search_policy = search_policy or default_search_policy()

    def resolve(self, scrobble: Scrobble) -> timedelta:
        """Return a positive duration for the scrobble's track.

        Raises:
            UnresolvedDurationError: the track has no known duration; skip it
            DurationLookupError: lookup failed transiently; skip it this time
        """
        artist, track = scrobble.artist, scrobble.track

        override = self._user_override(artist, track)
        if override is not None:
            return override

        if track in self.unknown_durations.get(artist, {}):
            raise UnresolvedDurationError(artist, track, already_known=True)

        key = cache_key(artist, track)
        cached = self._cached_duration(key, artist, track)
        if cached is not None:
            return cached

        self.stats.record_cache_miss()
        log.debug("Cache miss for %s - %s", artist, track)

        duration = self._search_duration(artist, track)
        if duration <= timedelta(0) and scrobble.url and self.fallback is not None:
            duration = self._fallback_duration(scrobble.url)

        if duration <= timedelta(0):
            self._register_unknown(artist, track)

        try:
            self.cache.set(key, format_duration(duration))
        except CacheError as e:
            log.error("Failed to cache track duration for %s - %s: %s", artist, track, e)

        log.debug("Found track duration %s for %s - %s", format_duration(duration), artist, track)
        return duration

    def _user_override(self, artist: str, track: str) -> timedelta | None:
        value = self.user_durations.get(artist, {}).get(track, "")
        if not value:
            return None
        try:
            duration = parse_duration(value)
        except ValueError:
            log.error("Failed to parse user duration %r for %s - %s", value, artist, track)
            return None
        if duration <= timedelta(0):
            log.error("Ignoring non-positive user duration %r for %s - %s", value, artist, track)
            return None
        log.debug("Found track duration in user track durations: %s - %s = %s", artist, track, value)
        return duration

    def _cached_duration(self, key: str, artist: str, track: str) -> timedelta | None:
        """Return a cached positive duration, None on a miss.

        A non-positive cached value is a stale "not found" entry: it is
        dropped and the track is registered as unknown.
        """
        try:
            value = self.cache.get(key)
        except CacheError as e:
            raise DurationLookupError(f"failed to read cached duration for {artist} - {track}: {e}") from e
        if value is None:
            return None

        try:
            duration = parse_duration(value)
        except ValueError:
            log.warning("Dropping unreadable cache entry %s=%r", key, value)
            self._delete_cached(key)
            return None

        self.stats.record_cache_hit()
        if duration <= timedelta(0):
            self._delete_cached(key)
            self._register_unknown(artist, track)

        log.debug("Cache hit for %s - %s: %s", artist, track, value)
        return duration

    def _delete_cached(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except CacheError as e:
            log.warning("Failed to delete cache entry %s: %s", key, e)

    def _search_duration(self, artist: str, track: str) -> timedelta:
        candidates = self.search_policy.call(
            self.search.search_recordings,
            artist,
            track,
            operation=f"MusicBrainz search for {artist} - {track}",
        )
        if not candidates:
            log.debug("No MusicBrainz recording found for %s - %s", artist, track)
            return timedelta(0)
        return timedelta(milliseconds=candidates[0].length_ms)

    def _fallback_duration(self, url: str) -> timedelta:
        if self.fallback is None:
            return timedelta(0)
        try:
            duration = self.fallback.track_duration(url)
        except DurationLookupError as e:
            log.warning("Could not get track duration from Last.fm page %s: %s", url, e)
            return timedelta(0)
        if duration is None:
            return timedelta(0)
        log.debug("Found track duration %s on %s", format_duration(duration), url)
        return duration

    def _register_unknown(self, artist: str, track: str) -> None:
        """Record the track as unresolvable for the rest of the run, then raise."""
        tracks = self.unknown_durations.setdefault(artist, {})
        if track in tracks:
            raise UnresolvedDurationError(artist, track, already_known=True)
        tracks[track] = ""
        self.stats.record_unknown_duration()
        raise UnresolvedDurationError(artist, track)
