"""Unit tests for scrobble_dedup/lastfm/parse.py."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from scrobble_dedup.errors import PageFetchError
from scrobble_dedup.lastfm.parse import parse_library_rows, parse_page_count, parse_track_page_length


def _row(artist: str, track: str, timestamp: int, href: str = "/music/Radiohead/_/Airbag") -> str:
    return f"""
    <tr class="chartlist-row">
      <td class="chartlist-name"><a href="{href}">{track}</a></td>
      <td class="chartlist-delete">
        <form action="/user/listener/library/delete" method="POST">
          <input type="hidden" name="csrfmiddlewaretoken" value="tok">
          <input type="hidden" name="artist_name" value="{artist}">
          <input type="hidden" name="track_name" value="{track}">
          <input type="hidden" name="timestamp" value="{timestamp}">
          <button type="submit">Delete scrobble</button>
        </form>
      </td>
    </tr>"""


def _library_page(*rows: str, pagination: str = "") -> str:
    return f"""
    <html><body>
      <table class="chartlist"><tbody>{"".join(rows)}</tbody></table>
      <ul class="pagination-list">{pagination}</ul>
    </body></html>"""


class TestParseLibraryRows:
    def test_rows_in_page_order(self) -> None:
        html = _library_page(
            _row("Radiohead", "Lucky", 1709294460, "/music/Radiohead/_/Lucky"),
            _row("Radiohead", "Airbag", 1709294400),
        )

        rows = parse_library_rows(html)

        assert [r.scrobble.track for r in rows] == ["Lucky", "Airbag"]
        first = rows[0].scrobble
        assert first.artist == "Radiohead"
        assert first.timestamp_raw == "1709294460"
        assert first.timestamp == datetime(2024, 3, 1, 12, 1, tzinfo=UTC)
        assert first.url == "https://www.last.fm/music/Radiohead/_/Lucky"

    def test_delete_form_captured(self) -> None:
        rows = parse_library_rows(_library_page(_row("Radiohead", "Airbag", 1709294400)))

        form = rows[0].delete_form
        assert form is not None
        assert form.action == "https://www.last.fm/user/listener/library/delete"
        assert form.timestamp == "1709294400"
        assert form.fields["artist_name"] == "Radiohead"
        assert form.fields["csrfmiddlewaretoken"] == "tok"

    def test_html_entities_unescaped(self) -> None:
        rows = parse_library_rows(_library_page(_row("Simon &amp; Garfunkel", "Cecilia", 1709294400)))
        assert rows[0].scrobble.artist == "Simon & Garfunkel"

    def test_unparsable_row_skipped(self) -> None:
        broken = _row("Radiohead", "Airbag", 1709294400).replace('value="1709294400"', 'value="yesterday"')
        html = _library_page(broken, _row("Radiohead", "Lucky", 1709294460))

        rows = parse_library_rows(html)

        assert [r.scrobble.track for r in rows] == ["Lucky"]

    def test_empty_page(self) -> None:
        assert parse_library_rows(_library_page()) == []


class TestParsePageCount:
    def test_last_pagination_entry(self) -> None:
        pagination = "".join(
            f'<li class="pagination-page"><a href="?page={n}">{n}</a></li>' for n in (1, 2, 3, 412)
        )
        assert parse_page_count(_library_page(pagination=pagination)) == 412

    def test_single_page_without_pagination(self) -> None:
        assert parse_page_count(_library_page(_row("Radiohead", "Airbag", 1709294400))) == 1

    def test_scrobble_count_heading(self) -> None:
        html = '<html><body><h2 class="metadata-title">Scrobbles</h2><p class="metadata-display">12</p></body></html>'
        assert parse_page_count(html) == 1

    def test_no_data(self) -> None:
        html = '<html><body><p class="no-data-message">No scrobbles in this period.</p></body></html>'
        assert parse_page_count(html) == 0

    def test_unrecognised_page(self) -> None:
        with pytest.raises(PageFetchError):
            parse_page_count("<html><body><h1>Something went wrong</h1></body></html>")


class TestParseTrackPageLength:
    def test_length_found(self) -> None:
        html = """
        <dl class="catalogue-metadata">
          <dt class="catalogue-metadata-heading">Length</dt>
          <dd class="catalogue-metadata-description">4:44</dd>
        </dl>"""
        assert parse_track_page_length(html) == timedelta(minutes=4, seconds=44)

    def test_length_missing(self) -> None:
        html = """
        <dl class="catalogue-metadata">
          <dt class="catalogue-metadata-heading">Released</dt>
          <dd class="catalogue-metadata-description">1997</dd>
        </dl>"""
        assert parse_track_page_length(html) is None

    def test_length_unreadable(self) -> None:
        html = '<dt class="catalogue-metadata-heading">Length</dt><dd>unknown</dd>'
        assert parse_track_page_length(html) is None
