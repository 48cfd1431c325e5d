from __future__ import annotations

import csv
import io
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .lastfm import Scrobble

log = logging.getLogger(__name__)

CSV_HEADER = ["Artist", "Track", "Timestamp", "TimestampString"]
DELETED_SCROBBLES_BASENAME = "deleted-scrobbles"


def _rfc3339(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


def _write_rows(handle, scrobbles: list[Scrobble]) -> None:
    writer = csv.writer(handle, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for s in sorted(scrobbles, key=lambda x: x.timestamp):
        writer.writerow([s.artist, s.track, _rfc3339(s.timestamp), s.timestamp_raw])


def scrobbles_to_csv(scrobbles: list[Scrobble]) -> str:
    """Render scrobbles as CSV text, oldest first."""
    buffer = io.StringIO()
    _write_rows(buffer, scrobbles)
    return buffer.getvalue()


def export_scrobbles_csv(
    scrobbles: list[Scrobble],
    data_dir: str | Path,
    started_at: datetime,
    dry_run: bool,
) -> Path | None:
    """Write the removed scrobbles to ``deleted-scrobbles-<start time>.csv``.

    Falls back to logging the CSV when the file cannot be created.
    """
    filename = f"{DELETED_SCROBBLES_BASENAME}-{started_at.strftime('%Y%m%d-%H%M%S')}.csv"
    path = Path(data_dir) / filename

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as f:
            _write_rows(f, scrobbles)
    except OSError as e:
        log.warning("Could not create deleted scrobbles file %s, logging them as CSV instead: %s", path, e)
        log.info("Scrobbles CSV:\n%s", scrobbles_to_csv(scrobbles))
        return None

    if dry_run:
        log.info("Would-be deleted scrobbles saved to file %s", path)
    else:
        log.info("Deleted scrobbles saved to file %s", path)
    return path
