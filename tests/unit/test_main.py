"""Unit tests for the run controller in scrobble_dedup/main.py."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import yaml

from scrobble_dedup import main
from scrobble_dedup.cache import InMemoryCache
from scrobble_dedup.errors import NoScrobblesError, PageFetchError
from tests.fakes import RecordingCache, make_context, make_scrobble, make_settings


@pytest.fixture
def sent(monkeypatch):
    messages: list[tuple[str, str, str]] = []

    def fake_send(token, chat_id, text, timeout=30.0):
        messages.append((token, chat_id, text))
        return True

    monkeypatch.setattr(main, "send_telegram_message", fake_send)
    return messages


def _run_context(data_dir, **overrides):
    ctx = make_context(make_settings(data_dir=str(data_dir), **overrides), cache=RecordingCache())
    ctx.unknown_durations["Portishead"] = {"Roads": ""}
    ctx.deleted_scrobbles.append(make_scrobble(0))
    return ctx


def _csv_files(data_dir):
    return sorted(data_dir.glob("deleted-scrobbles-*.csv"))


class TestFinishRun:
    def test_persists_results_and_closes_cache(self, data_dir, sent) -> None:
        ctx = _run_context(data_dir)

        main.finish_run(ctx)

        durations = yaml.safe_load((data_dir / "track-durations.yaml").read_text(encoding="utf-8"))
        assert durations == {"Portishead": {"Roads": ""}}
        assert len(_csv_files(data_dir)) == 1
        assert ctx.cache.closed is True
        assert sent == []

    def test_nothing_to_write(self, data_dir, sent) -> None:
        ctx = make_context(make_settings(data_dir=str(data_dir)))

        main.finish_run(ctx)

        assert not (data_dir / "track-durations.yaml").exists()
        assert _csv_files(data_dir) == []
        assert ctx.cache.closed is True

    def test_telegram_report(self, data_dir, sent) -> None:
        ctx = _run_context(data_dir, telegram_bot_token="123:abc", telegram_chat_id="42")

        main.finish_run(ctx)

        assert len(sent) == 1
        token, chat_id, text = sent[0]
        assert (token, chat_id) == ("123:abc", "42")
        assert "Scrobbles that would be deleted: 1" in text

    def test_cache_closed_when_reporting_fails(self, data_dir, monkeypatch) -> None:
        ctx = _run_context(data_dir)
        monkeypatch.setattr(main, "export_scrobbles_csv", MagicMock(side_effect=RuntimeError("disk on fire")))

        with pytest.raises(RuntimeError):
            main.finish_run(ctx)
        assert ctx.cache.closed is True


class TestProcessHistory:
    def test_logs_in_then_walks(self, data_dir, sent) -> None:
        ctx = _run_context(data_dir)
        calls: list[str] = []
        walker = MagicMock()
        walker.walk.side_effect = lambda: calls.append("walk")

        main.process_history(ctx, walker, login=lambda: calls.append("login"))

        assert calls == ["login", "walk"]
        assert ctx.cache.closed is True

    def test_interrupt_still_saves_progress(self, data_dir, sent) -> None:
        ctx = _run_context(data_dir)
        walker = MagicMock()
        walker.walk.side_effect = KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            main.process_history(ctx, walker)

        assert (data_dir / "track-durations.yaml").exists()
        assert len(_csv_files(data_dir)) == 1
        assert ctx.cache.closed is True

    def test_page_failure_propagates_after_saving(self, data_dir, sent) -> None:
        ctx = _run_context(data_dir)
        walker = MagicMock()
        walker.walk.side_effect = PageFetchError("page 3 timed out")

        with pytest.raises(PageFetchError):
            main.process_history(ctx, walker)

        assert len(_csv_files(data_dir)) == 1

    def test_no_scrobbles_is_not_an_error(self, data_dir, sent) -> None:
        ctx = make_context(make_settings(data_dir=str(data_dir)))
        walker = MagicMock()
        walker.walk.side_effect = NoScrobblesError()

        main.process_history(ctx, walker)

        assert ctx.cache.closed is True


class TestBuildContext:
    def test_loads_user_durations(self, data_dir) -> None:
        (data_dir / "track-durations.yaml").write_text("Radiohead:\n  Airbag: 4m44s\n", encoding="utf-8")

        ctx = main.build_context(make_settings(data_dir=str(data_dir)))

        assert ctx.user_durations == {"Radiohead": {"Airbag": "4m44s"}}
        assert ctx.unknown_durations == {}
        assert isinstance(ctx.cache, InMemoryCache)

    def test_creates_data_dir(self, tmp_path) -> None:
        data_dir = tmp_path / "fresh"
        main.build_context(make_settings(data_dir=str(data_dir)))
        assert data_dir.is_dir()
