from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..durations.parsing import parse_track_length
from ..errors import PageFetchError
from .scrobble import Scrobble

log = logging.getLogger(__name__)

LASTFM_BASE_URL = "https://www.last.fm"


@dataclass(frozen=True)
class DeleteForm:
    """The hidden delete form attached to a library row."""

    action: str
    fields: dict[str, str] = field(default_factory=dict)

    @property
    def timestamp(self) -> str:
        return self.fields.get("timestamp", "")


@dataclass(frozen=True)
class LibraryRow:
    scrobble: Scrobble
    delete_form: DeleteForm | None


def _input_value(row, name: str) -> str | None:
    node = row.find("input", attrs={"name": name})
    if node is None:
        return None
    return (node.get("value") or "").strip()


def _parse_row(row) -> LibraryRow:
    artist = _input_value(row, "artist_name")
    if artist is None:
        raise ValueError("artist not found in row")
    track = _input_value(row, "track_name")
    if track is None:
        raise ValueError("track not found in row")
    timestamp_raw = _input_value(row, "timestamp")
    if timestamp_raw is None:
        raise ValueError("timestamp not found in row")

    try:
        timestamp = datetime.fromtimestamp(int(timestamp_raw), tz=UTC)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"failed to parse timestamp {timestamp_raw!r}") from e

    link = row.select_one("td.chartlist-name a")
    if link is None or not link.get("href"):
        raise ValueError("url not found in row")
    url = urljoin(LASTFM_BASE_URL, link["href"].strip())

    delete_form = None
    form = row.find("input", attrs={"name": "timestamp"}).find_parent("form")
    if form is not None and form.get("action"):
        fields = {
            node["name"]: node.get("value") or ""
            for node in form.find_all("input")
            if node.get("name")
        }
        delete_form = DeleteForm(action=urljoin(LASTFM_BASE_URL, form["action"]), fields=fields)

    scrobble = Scrobble(
        artist=artist,
        track=track,
        timestamp=timestamp,
        timestamp_raw=timestamp_raw,
        url=url,
    )
    return LibraryRow(scrobble=scrobble, delete_form=delete_form)


def parse_library_rows(html: str) -> list[LibraryRow]:
    """Parse the scrobble rows of a library page, in page order (newest first).

    Rows that cannot be parsed are logged and skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    rows: list[LibraryRow] = []

    for node in soup.select("tr.chartlist-row"):
        try:
            rows.append(_parse_row(node))
        except ValueError as e:
            log.error("Failed to parse scrobble row: %s", e)
            continue

    log.debug("Parsed %d scrobble rows", len(rows))
    return rows


def parse_page_count(html: str) -> int:
    """Return the number of library pages, or 0 if the period has no scrobbles.

    Raises:
        PageFetchError: if the page has neither pagination nor scrobbles
    """
    soup = BeautifulSoup(html, "html.parser")

    if soup.select_one("p.no-data-message") is not None:
        return 0

    pages = soup.select(".pagination-page")
    if pages:
        last = pages[-1].get_text(" ", strip=True).split(" ")[0]
        try:
            return int(last)
        except ValueError as e:
            raise PageFetchError(f"failed to read total pages from {last!r}") from e

    scrobble_count = 0
    for heading in soup.select("h2.metadata-title"):
        if heading.get_text(strip=True) == "Scrobbles":
            count_node = heading.find_next_sibling("p")
            if count_node is not None:
                text = count_node.get_text(strip=True).replace(",", "")
                scrobble_count = int(text) if text.isdigit() else 0
            break

    # Less than one full page of scrobbles: no pagination is rendered
    if scrobble_count > 0 or soup.select_one("tr.chartlist-row") is not None:
        return 1

    raise PageFetchError("no pagination found on the library page")


def parse_track_page_length(html: str) -> timedelta | None:
    """Read the "Length" metadata from a track page, None when absent."""
    soup = BeautifulSoup(html, "html.parser")

    for heading in soup.select(".catalogue-metadata-heading"):
        if heading.get_text(strip=True) != "Length":
            continue
        value = heading.find_next_sibling()
        if value is None:
            return None
        text = value.get_text(strip=True)
        try:
            return parse_track_length(text)
        except ValueError:
            log.warning("Unrecognised track length %r", text)
            return None

    return None
