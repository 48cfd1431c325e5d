"""Pairwise classification of adjacent scrobbles.

All functions are pure. ``previous`` is the chronologically earlier scrobble,
``current`` the one right after it, and ``current`` must carry a positive
``track_duration``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from enum import Enum

from ..lastfm import Scrobble

log = logging.getLogger(__name__)


class Verdict(Enum):
    KEEP = "keep"
    # previous is a retry duplicate of current; previous is removed
    DUPLICATE = "duplicate"
    # current was scrobbled before it could have finished; current is removed
    INCOMPLETE = "incomplete"


def completion_percent(previous: Scrobble, current: Scrobble) -> float:
    """Time between the two scrobbles as a percentage of current's length, capped at 100."""
    duration = current.track_duration
    if duration is None or duration <= timedelta(0):
        raise ValueError(f"{current.describe()} has no positive track duration")
    elapsed = current.timestamp - previous.timestamp
    return min(100.0, 100.0 * (elapsed / duration))


def is_duplicate(previous: Scrobble, current: Scrobble, threshold: float) -> bool:
    if previous.artist != current.artist or previous.track != current.track:
        return False
    if previous.timestamp == current.timestamp:
        return False

    completion = completion_percent(previous, current)
    duplicate = completion < threshold
    log.debug(
        "Duplicate check %s -> %s: completion=%.2f%% threshold=%s duplicate=%s",
        previous.timestamp.isoformat(),
        current.timestamp.isoformat(),
        completion,
        threshold,
        duplicate,
    )
    return duplicate


def is_incomplete(previous: Scrobble, current: Scrobble, threshold: float) -> bool:
    completion = completion_percent(previous, current)
    incomplete = completion < threshold
    log.debug(
        "Incomplete check %s -> %s: duration=%s completion=%.2f%% threshold=%s incomplete=%s",
        previous.timestamp.isoformat(),
        current.timestamp.isoformat(),
        current.track_duration,
        completion,
        threshold,
        incomplete,
    )
    return incomplete


def classify(
    previous: Scrobble,
    current: Scrobble,
    duplicate_threshold: float,
    complete_threshold: float = 0,
) -> Verdict:
    """Classify a pair. Duplicate detection wins over incomplete detection.

    A ``complete_threshold`` of 0 disables incomplete detection.
    """
    if is_duplicate(previous, current, duplicate_threshold):
        return Verdict.DUPLICATE
    if complete_threshold > 0 and is_incomplete(previous, current, complete_threshold):
        return Verdict.INCOMPLETE
    return Verdict.KEEP
