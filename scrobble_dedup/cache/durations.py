from __future__ import annotations

import logging
from pathlib import Path

import yaml

from ..errors import ConfigurationError

log = logging.getLogger(__name__)

TRACK_DURATIONS_FILE = "track-durations.yaml"

# artist -> track -> duration string ("" while still unknown)
DurationsByArtist = dict[str, dict[str, str]]

HEADER = """\
# This file lists tracks for which no duration could be found on MusicBrainz or Last.fm.
# While a track has an unknown duration, its duplicate scrobbles are never deleted.
# Fill in the duration of each track (ex: 5m6s, 3m45s, 1h2m0s), then rerun the program.
# You may also use this file to override a track duration; artist and track names
# must match the scrobble exactly.

"""


class TrackDurationsFile:
    """User-editable YAML file of track duration overrides and unknown tracks."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> DurationsByArtist:
        """Read the file. A missing or empty file is an empty mapping."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.debug("No track durations file at %s", self.path)
            return {}
        except OSError as e:
            raise ConfigurationError(f"failed to read {self.path}: {e}") from e

        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"failed to parse {self.path}: {e}") from e

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{self.path} must map artists to tracks to durations")

        durations: DurationsByArtist = {}
        for artist, tracks in raw.items():
            if not tracks:
                continue
            if not isinstance(tracks, dict):
                raise ConfigurationError(f"{self.path}: entry for artist {artist!r} must map tracks to durations")
            durations[str(artist)] = {str(track): "" if value is None else str(value) for track, value in tracks.items()}

        log.debug(
            "Loaded %d track durations from %s",
            sum(len(t) for t in durations.values()),
            self.path.name,
        )
        return durations

    def render(self, unknown: DurationsByArtist) -> str:
        """Merge unknown tracks with the current file contents.

        Values already present in the file win over the empty marker, so a
        duration typed in by hand is never overwritten.
        """
        merged: DurationsByArtist = {artist: dict(tracks) for artist, tracks in unknown.items()}
        for artist, tracks in self.load().items():
            merged.setdefault(artist, {}).update(tracks)

        body = yaml.safe_dump(merged, allow_unicode=True, sort_keys=True, default_flow_style=False)
        return HEADER + body

    def write_unknown(self, unknown: DurationsByArtist) -> Path | None:
        """Persist unknown tracks merged with existing entries.

        Returns the written path, or None if the file could not be written
        (the YAML is then logged so it can be saved by hand).
        """
        content = self.render(unknown)
        temp_file = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_file.write_text(content, encoding="utf-8")
            temp_file.replace(self.path)
        except PermissionError as e:
            log.warning("Failed to save unknown track durations in %s: %s", self.path, e)
            log.info('Save the following YAML in a file named "%s" and follow the instructions:\n%s', self.path.name, content)
            return None

        log.info("Unknown track durations saved to file %s", self.path)
        return self.path
