import logging
import time
from typing import Any

log = logging.getLogger(__name__)


class RunStats:
    """Counters for one deduplication run.

    Each counter is bumped only by the component that observed the event:
    the resolver counts cache hits/misses and unknown tracks, the walker
    counts processed/skipped scrobbles and delete failures.
    """

    def __init__(self) -> None:
        self.cache_hits: int = 0
        self.cache_misses: int = 0
        self.processed_scrobbles: int = 0
        self.unknown_durations: int = 0
        self.skipped_unknown_duration: int = 0
        self.lookup_failures: int = 0
        self.delete_failures: int = 0
        self.session_start: float = time.time()
        self.session_end: float | None = None

    def record_cache_hit(self) -> None:
        self.cache_hits += 1

    def record_cache_miss(self) -> None:
        self.cache_misses += 1

    def record_processed(self) -> None:
        self.processed_scrobbles += 1

    def record_unknown_duration(self) -> None:
        self.unknown_durations += 1

    def record_skipped(self) -> None:
        self.skipped_unknown_duration += 1

    def record_lookup_failure(self) -> None:
        self.lookup_failures += 1

    def record_delete_failure(self) -> None:
        self.delete_failures += 1

    def stop(self) -> None:
        """Freeze the elapsed time."""
        if self.session_end is None:
            self.session_end = time.time()

    def elapsed(self) -> float:
        """Seconds since the run started (until stop() if called)."""
        end = self.session_end if self.session_end is not None else time.time()
        return end - self.session_start

    def get_statistics(self) -> dict[str, Any]:
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "processed_scrobbles": self.processed_scrobbles,
            "unknown_durations": self.unknown_durations,
            "skipped_unknown_duration": self.skipped_unknown_duration,
            "lookup_failures": self.lookup_failures,
            "delete_failures": self.delete_failures,
            "elapsed_seconds": self.elapsed(),
        }

    def summary_lines(self, removed: int, dry_run: bool) -> list[str]:
        """Human-readable statistics block, also used for notifications."""
        if dry_run:
            removed_line = f"Scrobbles that would be deleted: {removed}"
        else:
            removed_line = f"Scrobbles deleted: {removed}"

        return [
            "Run statistics:",
            removed_line,
            f"MusicBrainz cache hits: {self.cache_hits}",
            f"MusicBrainz cache misses: {self.cache_misses}",
            f"Scrobbles processed: {self.processed_scrobbles}",
            f"Unknown duration track count: {self.unknown_durations}",
            f"Scrobbles skipped due to unknown track duration: {self.skipped_unknown_duration}",
            f"Scrobbles skipped due to lookup errors: {self.lookup_failures}",
            f"Scrobbles not deleted due to error: {self.delete_failures}",
            f"Elapsed time: {self.elapsed():.1f} seconds",
        ]

    def log_statistics(self, removed: int, dry_run: bool) -> list[str]:
        lines = self.summary_lines(removed, dry_run)
        log.info("=== %s ===", lines[0].rstrip(":"))
        for line in lines[1:]:
            log.info(line)
        log.info("==========================")
        return lines
