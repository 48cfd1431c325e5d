from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ..errors import (
    ConfigurationError,
    DurationLookupError,
    NoScrobblesError,
    PageFetchError,
    ScrobbleDeleteError,
    UnresolvedDurationError,
)
from ..retry import RetryPolicy
from .classifier import Verdict, classify

if TYPE_CHECKING:
    from ..context import RuntimeContext
    from ..durations import DurationResolver
    from ..lastfm import DateRange, Scrobble

log = logging.getLogger(__name__)


class ScrobbleSource(Protocol):
    def page_count(self, date_range: DateRange) -> int: ...

    def fetch_page(self, page: int, date_range: DateRange) -> list[Scrobble]: ...


class ScrobbleDeleter(Protocol):
    def delete_scrobble(self, timestamp_raw: str, select_last: bool) -> None: ...


class PageWalker:
    """Scan the library from the oldest page to the newest, one pair at a time.

    Pages are shown newest first, so each page is reversed and the page
    number counts down to 1. ``previous`` carries over between pages.
    """

    def __init__(
        self,
        ctx: RuntimeContext,
        source: ScrobbleSource,
        deleter: ScrobbleDeleter,
        resolver: DurationResolver,
        page_policy: RetryPolicy | None = None,
        delete_policy: RetryPolicy | None = None,
    ):
        self.ctx = ctx
        self.source = source
        self.deleter = deleter
        self.resolver = resolver
        self.page_policy = page_policy or RetryPolicy(
            max_attempts=ctx.settings.page_max_retries,
            retry_on=(PageFetchError,),
        )
        self.delete_policy = delete_policy or RetryPolicy(
            max_attempts=ctx.settings.delete_max_retries,
            retry_on=(ScrobbleDeleteError,),
        )
        self.previous: Scrobble | None = None

    def resolve_start_page(self) -> int:
        total_pages = self.page_policy.call(
            self.source.page_count,
            self.ctx.date_range,
            operation="page count",
        )
        if total_pages <= 0:
            raise NoScrobblesError()
        log.info("Total pages found: %d", total_pages)

        start_page = self.ctx.settings.start_page
        if not start_page:
            return total_pages
        if start_page > total_pages:
            raise ConfigurationError(f"start page {start_page} exceeds total pages {total_pages}")
        log.info("Starting from page %d", start_page)
        return start_page

    def walk(self) -> None:
        start_page = self.resolve_start_page()
        for page in range(start_page, 0, -1):
            self.process_page(page)
        log.info("Processing complete")

    def process_page(self, page: int) -> None:
        log.info("Processing page %d", page)
        scrobbles = self.page_policy.call(
            self.source.fetch_page,
            page,
            self.ctx.date_range,
            operation=f"fetch page {page}",
        )
        for scrobble in reversed(scrobbles):
            self.process(scrobble)
            self.ctx.stats.record_processed()

    def process(self, current: Scrobble) -> None:
        """Compare one scrobble with its predecessor and act on the verdict."""
        stats = self.ctx.stats
        try:
            duration = self.resolver.resolve(current)
        except UnresolvedDurationError as e:
            if not e.already_known:
                log.warning("%s, skipping scrobble", e)
            stats.record_skipped()
            self.previous = current
            return
        except DurationLookupError as e:
            log.warning("Failed to get track duration, skipping scrobble: %s", e)
            stats.record_lookup_failure()
            self.previous = current
            return

        current = current.with_duration(duration)
        previous = self.previous
        if previous is None:
            self.previous = current
            return

        settings = self.ctx.settings
        verdict = classify(previous, current, settings.duplicate_threshold, settings.complete_threshold)

        if verdict is Verdict.DUPLICATE:
            log.info(
                "Duplicate scrobble detected: %s - %s (%s), removing the one at %s",
                current.artist,
                current.track,
                duration,
                previous.timestamp.isoformat(),
            )
            self._remove(previous, select_last=False)
            self.previous = current
        elif verdict is Verdict.INCOMPLETE:
            log.info(
                "Incomplete scrobble detected: %s - %s at %s (previous at %s)",
                current.artist,
                current.track,
                current.timestamp.isoformat(),
                previous.timestamp.isoformat(),
            )
            removed = self._remove(current, select_last=True)
            # A current scrobble that is still on the site stays the predecessor
            self.previous = previous if removed else current
        else:
            self.previous = current

    def _remove(self, scrobble: Scrobble, select_last: bool) -> bool:
        """Record the scrobble for removal and delete it unless dry-running."""
        self.ctx.deleted_scrobbles.append(scrobble)

        if self.ctx.settings.dry_run:
            log.info("Dry run, scrobble not deleted: %s", scrobble.describe())
            return True

        try:
            self.delete_policy.call(
                self.deleter.delete_scrobble,
                scrobble.timestamp_raw,
                select_last,
                operation=f"delete scrobble {scrobble.timestamp_raw}",
            )
        except ScrobbleDeleteError as e:
            self.ctx.stats.record_delete_failure()
            log.warning("Failed to delete scrobble %s: %s", scrobble.describe(), e)
            return False

        log.info("Scrobble deleted: %s", scrobble.describe())
        return True
