from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .lastfm import DateRange

if TYPE_CHECKING:
    from .cache import Cache
    from .cache.durations import DurationsByArtist
    from .config import Settings
    from .lastfm import Scrobble
    from .metrics import RunStats


@dataclass
class RuntimeContext:
    """State shared by every component of one run.

    Created once at run start and passed by reference; ``unknown_durations``
    and ``deleted_scrobbles`` are accumulated in place and must never be
    copied.
    """

    settings: Settings
    cache: Cache
    stats: RunStats
    user_durations: DurationsByArtist
    unknown_durations: DurationsByArtist = field(default_factory=dict)
    deleted_scrobbles: list[Scrobble] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.settings.date_from, self.settings.date_to)
