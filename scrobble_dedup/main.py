from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable
from pathlib import Path

from .cache import open_cache
from .cache.durations import TRACK_DURATIONS_FILE, TrackDurationsFile
from .config import Settings
from .context import RuntimeContext
from .detection import PageWalker
from .durations import DurationResolver, MusicBrainzLookup, default_search_policy
from .errors import ConfigurationError, NoScrobblesError
from .export import export_scrobbles_csv
from .lastfm import LastFMWebClient
from .metrics import RunStats
from .notify import send_telegram_message

log = logging.getLogger(__name__)

COOKIE_FILE = "lastfm-cookies.json"


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt(f"received signal {signum}")


def install_signal_handlers() -> None:
    """Make SIGTERM take the same path as Ctrl-C."""
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _raise_interrupt)


def build_context(settings: Settings) -> RuntimeContext:
    """Load user track durations and open the cache for a new run."""
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    durations_file = TrackDurationsFile(Path(settings.data_dir) / TRACK_DURATIONS_FILE)
    user_durations = durations_file.load()
    return RuntimeContext(
        settings=settings,
        cache=open_cache(settings),
        stats=RunStats(),
        user_durations=user_durations,
    )


def finish_run(ctx: RuntimeContext) -> None:
    """Report statistics and persist what the run accumulated, then close the cache.

    Runs after normal completion, errors and interrupts alike.
    """
    settings = ctx.settings
    try:
        ctx.stats.stop()
        lines = ctx.stats.log_statistics(len(ctx.deleted_scrobbles), settings.dry_run)

        if settings.telegram_enabled:
            header = f"Run of {ctx.started_at.strftime('%a, %d %b %Y %H:%M:%S %Z')}"
            send_telegram_message(
                settings.telegram_bot_token,
                settings.telegram_chat_id,
                "\n".join([header, "", *lines]),
                timeout=settings.request_timeout,
            )

        if ctx.unknown_durations:
            durations_file = TrackDurationsFile(Path(settings.data_dir) / TRACK_DURATIONS_FILE)
            try:
                durations_file.write_unknown(ctx.unknown_durations)
            except (ConfigurationError, OSError) as e:
                log.error("Failed to save unknown track durations: %s", e)

        if ctx.deleted_scrobbles:
            export_scrobbles_csv(
                ctx.deleted_scrobbles,
                settings.data_dir,
                ctx.started_at,
                settings.dry_run,
            )
    finally:
        ctx.cache.close()


def process_history(
    ctx: RuntimeContext,
    walker: PageWalker,
    login: Callable[[], None] | None = None,
) -> None:
    """Walk the whole history and always finish the run, even on interrupt."""
    try:
        if login is not None:
            login()
        walker.walk()
    except NoScrobblesError as e:
        log.warning("%s", e)
    except KeyboardInterrupt:
        log.warning("Closing due to interrupt")
        raise
    finally:
        finish_run(ctx)


def run(settings: Settings) -> None:
    """Run the scrobble deduplication workflow."""
    settings.validate()
    install_signal_handlers()

    if settings.dry_run:
        log.info("Dry run: duplicates are reported, nothing is deleted")

    ctx = build_context(settings)
    client = LastFMWebClient(
        settings.lastfm_user,
        settings.lastfm_password,
        cookie_file=Path(settings.data_dir) / COOKIE_FILE,
        timeout=settings.request_timeout,
    )
    resolver = DurationResolver(
        ctx.cache,
        ctx.user_durations,
        ctx.unknown_durations,
        ctx.stats,
        search=MusicBrainzLookup(timeout=settings.request_timeout),
        fallback=client,
        search_policy=default_search_policy(settings.musicbrainz_max_retries),
    )
    walker = PageWalker(ctx, client, client, resolver)

    try:
        process_history(ctx, walker, login=client.login)
    finally:
        client.close()
