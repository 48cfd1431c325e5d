class DedupError(Exception):
    """Base class for all scrobble-dedup errors."""


class ConfigurationError(DedupError, ValueError):
    """Settings are inconsistent; raised before any I/O happens."""


class CacheError(DedupError):
    """A cache backend failed for a reason other than a miss."""


class UnresolvedDurationError(DedupError):
    """No duration can be found for a track; the scrobble must be skipped.

    ``already_known`` is True when the track was registered as unknown earlier
    in the run and the lookup was short-circuited.
    """

    def __init__(self, artist: str, track: str, already_known: bool = False):
        self.artist = artist
        self.track = track
        self.already_known = already_known
        if already_known:
            msg = f"{artist} - {track}: duration already known to be unresolvable"
        else:
            msg = f"{artist} - {track}: no duration found, saved to unknown track durations"
        super().__init__(msg)


class DurationLookupError(DedupError):
    """Metadata lookup failed after retries. Not recorded permanently."""


class PageFetchError(DedupError):
    """A history page could not be fetched or parsed."""


class ScrobbleDeleteError(DedupError):
    """A scrobble could not be deleted."""


class LoginError(DedupError):
    """Authentication against Last.fm failed."""


class NoScrobblesError(DedupError):
    """The selected period holds no scrobbles."""

    def __init__(self, msg: str = "no scrobbles found for the selected period"):
        super().__init__(msg)
