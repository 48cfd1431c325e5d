from __future__ import annotations

import hashlib
import logging
import socket
from dataclasses import dataclass

import musicbrainzngs

from ..errors import DurationLookupError

log = logging.getLogger(__name__)

APP_NAME = "scrobble-dedup"
APP_VERSION = "1.0.0"
APP_CONTACT = "https://github.com/scrobble-dedup/scrobble-dedup"

CACHE_KEY_PREFIX = "mbquery:"


@dataclass(frozen=True, slots=True)
class Candidate:
    """A recording returned by a metadata search."""

    title: str
    length_ms: int


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_query(artist: str, track: str) -> str:
    """Lucene query matching a recording by artist and title."""
    return f'artist:"{_quote(artist)}" AND recording:"{_quote(track)}"'


def cache_key(artist: str, track: str) -> str:
    """Stable cache key: the SHA-256 of the search query."""
    digest = hashlib.sha256(build_query(artist, track).encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


class MusicBrainzLookup:
    """Recording search against the MusicBrainz web service.

    musicbrainzngs applies the service's one request per second limit itself.
    Its urllib transport takes no timeout argument, so ``timeout`` is applied
    as the default socket timeout.
    """

    def __init__(
        self,
        app: str = APP_NAME,
        version: str = APP_VERSION,
        contact: str = APP_CONTACT,
        timeout: float | None = None,
    ):
        musicbrainzngs.set_useragent(app, version, contact)
        if timeout:
            socket.setdefaulttimeout(timeout)

    def search_recordings(self, artist: str, track: str) -> list[Candidate]:
        """Return candidate recordings in the service's ranking order.

        An empty list means the service answered but found nothing.

        Raises:
            DurationLookupError: if the request failed
        """
        query = build_query(artist, track)
        try:
            result = musicbrainzngs.search_recordings(query=query)
        except (musicbrainzngs.WebServiceError, OSError) as e:
            raise DurationLookupError(f"failed to search MusicBrainz for {artist} - {track}: {e}") from e

        candidates: list[Candidate] = []
        for rec in result.get("recording-list", []):
            try:
                length_ms = int(rec.get("length") or 0)
            except (TypeError, ValueError):
                length_ms = 0
            candidates.append(Candidate(title=rec.get("title", ""), length_ms=length_ms))

        if len(candidates) > 1:
            log.debug("Multiple MusicBrainz recordings found for %s, using the first one (%d)", query, len(candidates))
            for i, c in enumerate(candidates):
                log.debug("  recording %d: %s (%d ms)", i, c.title, c.length_ms)

        return candidates
